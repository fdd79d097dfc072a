# Overview: Flask API routes for employees and customers; parses input and returns JSON responses.

# backend/salonpos/routes/people.py
from flask import Blueprint, current_app, request

from ..models import Customer, Employee, EmployeeService
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_employee_service,
    ValidationError,
    NotFoundError,
    InvalidOperationError,
)

EMPLOYEE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone"},
    required_on_create={"name"},
)

EMPLOYEE_SERVICE_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"item_id", "commission_rate"},
    required_on_create={"item_id", "commission_rate"},
)

EMPLOYEE_SERVICE_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"commission_rate", "is_active"},
)

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address", "date_of_birth"},
    required_on_create={"name"},
)

employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")
customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


# =============================================================================
# EMPLOYEES
# =============================================================================

@employees_bp.get("")
def list_employees_route():
    from ..services.people_service import list_employees

    return {"employees": [e.to_dict() for e in list_employees()]}, 200


@employees_bp.post("")
def create_employee_route():
    payload = dict(request.get_json(silent=True) or {})
    role_ids = payload.pop("role_ids", None)

    try:
        patch = validate_payload(model=Employee, payload=payload, policy=EMPLOYEE_POLICY, partial=False)
    except ValidationError as e:
        return {"error": str(e)}, 400

    from ..services.people_service import create_employee

    try:
        employee = create_employee(patch=patch, role_ids=role_ids)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to create employee")
        return {"error": "Internal server error"}, 500

    return {"employee": employee.to_dict()}, 201


@employees_bp.get("/<int:employee_id>")
def get_employee_route(employee_id: int):
    from ..services.people_service import get_employee

    try:
        return {"employee": get_employee(employee_id).to_dict()}, 200
    except NotFoundError as e:
        return {"error": str(e)}, 404


@employees_bp.put("/<int:employee_id>")
def update_employee_route(employee_id: int):
    payload = dict(request.get_json(silent=True) or {})
    role_ids = payload.pop("role_ids", None)

    try:
        patch = validate_payload(model=Employee, payload=payload, policy=EMPLOYEE_POLICY, partial=True)
    except ValidationError as e:
        return {"error": str(e)}, 400

    from ..services.people_service import update_employee

    try:
        employee = update_employee(employee_id, patch, role_ids=role_ids)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to update employee")
        return {"error": "Internal server error"}, 500

    return {"employee": employee.to_dict()}, 200


@employees_bp.delete("/<int:employee_id>")
def delete_employee_route(employee_id: int):
    from ..services.people_service import delete_employee

    try:
        delete_employee(employee_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidOperationError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to delete employee")
        return {"error": "Internal server error"}, 500

    return {"ok": True}, 200


# =============================================================================
# EMPLOYEE SERVICES
# =============================================================================

@employees_bp.get("/<int:employee_id>/services")
def list_employee_services_route(employee_id: int):
    from ..services.people_service import list_employee_services

    try:
        rows = list_employee_services(employee_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"services": [s.to_dict() for s in rows]}, 200


@employees_bp.post("/<int:employee_id>/services")
def create_employee_service_route(employee_id: int):
    """Body: {"item_id": int, "commission_rate": number}."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=EmployeeService, payload=payload, policy=EMPLOYEE_SERVICE_CREATE_POLICY, partial=False
        )
        enforce_rules_employee_service(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    from ..services.people_service import create_employee_service

    try:
        assignment = create_employee_service(
            employee_id, item_id=patch["item_id"], commission_rate=patch["commission_rate"]
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidOperationError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create employee service")
        return {"error": "Internal server error"}, 500

    return {"service": assignment.to_dict()}, 201


@employees_bp.put("/<int:employee_id>/services/<int:service_id>")
def update_employee_service_route(employee_id: int, service_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=EmployeeService, payload=payload, policy=EMPLOYEE_SERVICE_UPDATE_POLICY, partial=True
        )
        enforce_rules_employee_service(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    from ..services.people_service import update_employee_service

    try:
        assignment = update_employee_service(employee_id, service_id, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to update employee service")
        return {"error": "Internal server error"}, 500

    return {"service": assignment.to_dict()}, 200


@employees_bp.delete("/<int:employee_id>/services/<int:service_id>")
def delete_employee_service_route(employee_id: int, service_id: int):
    from ..services.people_service import delete_employee_service

    try:
        delete_employee_service(employee_id, service_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"ok": True}, 200


# =============================================================================
# CUSTOMERS
# =============================================================================

@customers_bp.get("")
def list_customers_route():
    """Query params: search (matches name, phone or email)."""
    from ..services.people_service import list_customers

    rows = list_customers(search=request.args.get("search"))
    return {"customers": [c.to_dict() for c in rows]}, 200


@customers_bp.post("")
def create_customer_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    except ValidationError as e:
        return {"error": str(e)}, 400

    from ..services.people_service import create_customer

    try:
        customer = create_customer(patch=patch)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return {"error": "Internal server error"}, 500

    return {"customer": customer.to_dict()}, 201


@customers_bp.get("/<int:customer_id>")
def get_customer_route(customer_id: int):
    from ..services.people_service import get_customer

    try:
        return {"customer": get_customer(customer_id).to_dict()}, 200
    except NotFoundError as e:
        return {"error": str(e)}, 404


@customers_bp.put("/<int:customer_id>")
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    except ValidationError as e:
        return {"error": str(e)}, 400

    from ..services.people_service import update_customer

    try:
        customer = update_customer(customer_id, patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"customer": customer.to_dict()}, 200
