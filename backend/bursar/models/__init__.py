from .tenancy import Institution
from .settings import FinancialSettings
from .concepts import ChargeConcept
from .third_parties import ThirdParty
from .obligations import FinancialObligation
from .payments import FinancialPayment
from .invoices import FinancialInvoice, FinancialInvoiceItem
from .registers import CashRegisterClose
from .expenses import FinancialCategory, FinancialExpense
from .directory import RosterPerson, RosterEnrollment

__all__ = [
    'Institution', 'FinancialSettings',
    'ChargeConcept', 'ThirdParty',
    'FinancialObligation', 'FinancialPayment',
    'FinancialInvoice', 'FinancialInvoiceItem',
    'CashRegisterClose',
    'FinancialCategory', 'FinancialExpense',
    'RosterPerson', 'RosterEnrollment',
]
