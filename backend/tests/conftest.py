"""
Pytest fixtures for bursar backend tests.

Provides a file-backed SQLite application (sequence allocation commits on
its own connection, so an in-memory database cannot be shared), per-test
table wipes, tenant fixtures, and a test client.
"""

from decimal import Decimal

import pytest
from bursar import create_app
from bursar.extensions import db
from bursar.models import Institution, RosterEnrollment, RosterPerson
from bursar.services import concept_service, third_party_service


ACTOR_ID = 501


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    db_path = tmp_path_factory.mktemp("bursar") / "test.sqlite3"
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def actor_id():
    return ACTOR_ID


@pytest.fixture(scope='function')
def institution(db_session):
    """Institution A (first tenant), on Bogota time."""
    inst = Institution(name="Colegio Central", code="CC", timezone="America/Bogota", is_active=True)
    db_session.add(inst)
    db_session.commit()
    return inst


@pytest.fixture(scope='function')
def other_institution(db_session):
    """Institution B (second tenant)."""
    inst = Institution(name="Liceo Norte", code="LN", timezone="UTC", is_active=True)
    db_session.add(inst)
    db_session.commit()
    return inst


@pytest.fixture(scope='function')
def concept(institution):
    """The "Tuition" concept, default amount 100000."""
    return concept_service.create_concept(
        institution.id,
        name="Tuition",
        default_amount=Decimal("100000"),
        is_massive=True,
    )


@pytest.fixture(scope='function')
def payer(institution):
    """Third party T1."""
    return third_party_service.create_third_party(
        institution.id,
        type="GUARDIAN",
        name="T1 Guardian",
        document="1020304050",
    )


@pytest.fixture(scope='function')
def second_payer(institution):
    return third_party_service.create_third_party(institution.id, type="OTHER", name="T2 Other")


@pytest.fixture(scope='function')
def roster(db_session, institution):
    """
    Three students: two active in grade 6 (groups 61, 62), one withdrawn.

    Returns the RosterPerson rows in creation order.
    """
    people = [
        RosterPerson(institution_id=institution.id, kind="STUDENT", first_name="Ana", last_name="Diaz",
                     document_number="S-1", document_type="TI", email="ana@example.com"),
        RosterPerson(institution_id=institution.id, kind="STUDENT", first_name="Luis", last_name="Rojas",
                     document_number="S-2", document_type="TI"),
        RosterPerson(institution_id=institution.id, kind="STUDENT", first_name="Eva", last_name="Mora",
                     document_number="S-3", document_type="TI"),
    ]
    db_session.add_all(people)
    db_session.flush()

    db_session.add_all([
        RosterEnrollment(person_id=people[0].id, grade_id=6, group_id=61, status="ACTIVE"),
        RosterEnrollment(person_id=people[1].id, grade_id=6, group_id=62, status="ACTIVE"),
        RosterEnrollment(person_id=people[2].id, grade_id=6, group_id=61, status="WITHDRAWN"),
    ])
    db_session.commit()
    return people


@pytest.fixture(scope='function')
def headers(institution, actor_id):
    """Identity headers for institution A."""
    return {"X-Institution-Id": str(institution.id), "X-Actor-Id": str(actor_id)}
