# Overview: Flask API routes for third parties (payers) and directory sync.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_tenant, json_error, json_body
from ..services import reporting_service, third_party_service
from ..services.directory_service import DIRECTORY_KINDS
from ..validation import coerce_bool, require_text


third_parties_bp = Blueprint("third_parties", __name__, url_prefix="/api/finance/third-parties")


@third_parties_bp.post("")
@require_tenant
def create_third_party_route():
    """
    Register a payer.

    Request body:
    {
        "type": "GUARDIAN",
        "name": "Ana Gomez",
        "reference_id": "77",  (optional, directory id)
        "document": "1020304050", "email": "...", ...  (optional profile)
    }
    """
    try:
        data = json_body()
        profile = {k: v for k, v in data.items() if k not in ("type", "name", "reference_id")}
        party = third_party_service.create_third_party(
            g.institution_id,
            type=data.get("type"),
            name=data.get("name"),
            reference_id=data.get("reference_id"),
            **profile,
        )
        return jsonify({"third_party": party.to_dict()}), 201
    except Exception as exc:
        return json_error(exc, "create third party")


@third_parties_bp.get("")
@require_tenant
def list_third_parties_route():
    try:
        parties = third_party_service.list_third_parties(
            g.institution_id,
            type=request.args.get("type"),
            search=request.args.get("search"),
            is_active=coerce_bool(request.args.get("is_active"), "is_active"),
        )
        return jsonify({"third_parties": [p.to_dict() for p in parties], "count": len(parties)})
    except Exception as exc:
        return json_error(exc, "list third parties")


@third_parties_bp.get("/<int:third_party_id>")
@require_tenant
def get_third_party_route(third_party_id: int):
    try:
        party = third_party_service.get_third_party(g.institution_id, third_party_id)
        return jsonify({"third_party": party.to_dict()})
    except Exception as exc:
        return json_error(exc, "get third party")


@third_parties_bp.get("/<int:third_party_id>/summary")
@require_tenant
def third_party_summary_route(third_party_id: int):
    try:
        return jsonify(reporting_service.third_party_summary(g.institution_id, third_party_id))
    except Exception as exc:
        return json_error(exc, "summarize third party")


@third_parties_bp.patch("/<int:third_party_id>")
@require_tenant
def update_third_party_route(third_party_id: int):
    try:
        party = third_party_service.update_third_party(g.institution_id, third_party_id, **json_body())
        return jsonify({"third_party": party.to_dict()})
    except Exception as exc:
        return json_error(exc, "update third party")


@third_parties_bp.delete("/<int:third_party_id>")
@require_tenant
def delete_third_party_route(third_party_id: int):
    try:
        outcome = third_party_service.delete_third_party(g.institution_id, third_party_id)
        return jsonify({"result": outcome})
    except Exception as exc:
        return json_error(exc, "delete third party")


@third_parties_bp.post("/from-directory")
@require_tenant
def materialize_third_party_route():
    """Get or create the third party mirroring a directory person."""
    try:
        data = json_body()
        party = third_party_service.get_or_create_from_directory(
            g.institution_id,
            data.get("kind"),
            require_text(str(data.get("external_id") or ""), "external_id"),
        )
        if party is None:
            return jsonify({"error": "Person not found in directory"}), 404
        return jsonify({"third_party": party.to_dict()})
    except Exception as exc:
        return json_error(exc, "materialize third party")


@third_parties_bp.post("/sync")
@require_tenant
def sync_third_parties_route():
    """Request body: {"kinds": ["STUDENT", "STAFF"]} (defaults to all kinds)."""
    try:
        data = json_body()
        result = third_party_service.sync_from_directory(g.institution_id, data.get("kinds") or DIRECTORY_KINDS)
        return jsonify(result)
    except Exception as exc:
        return json_error(exc, "sync third parties")
