# backend/salonpos/services/people_service.py
"""Employees, their per-item service assignments, and customers."""
from __future__ import annotations

from ..extensions import db
from ..models import Customer, Employee, EmployeeService, Item, SaleLine
from ..money import ZERO, quantize_rate
from ..validation import InvalidOperationError, NotFoundError, ValidationError
from .catalog_service import _load, _load_roles, apply_patch
from .concurrency import run_with_retry

EMPLOYEE_MUTABLE_FIELDS = {"name", "email", "phone"}
EMPLOYEE_SERVICE_MUTABLE_FIELDS = {"commission_rate", "is_active"}
CUSTOMER_MUTABLE_FIELDS = {"name", "email", "phone", "address", "date_of_birth"}


def list_employees() -> list[Employee]:
    return db.session.query(Employee).order_by(Employee.name.asc()).all()


def get_employee(employee_id: int) -> Employee:
    return _load(Employee, employee_id, "Employee")


def create_employee(*, patch: dict, role_ids=None) -> Employee:
    def _op():
        employee = Employee()
        apply_patch(employee, patch, EMPLOYEE_MUTABLE_FIELDS)
        employee.roles = _load_roles(role_ids)
        db.session.add(employee)
        db.session.commit()
        return employee

    return run_with_retry(_op)


def update_employee(employee_id: int, patch: dict, role_ids=None) -> Employee:
    """role_ids, when given, replaces the employee's roles."""
    def _op():
        employee = get_employee(employee_id)
        apply_patch(employee, patch, EMPLOYEE_MUTABLE_FIELDS)
        if role_ids is not None:
            employee.roles = _load_roles(role_ids)
        db.session.commit()
        return employee

    return run_with_retry(_op)


def delete_employee(employee_id: int) -> None:
    """Sale lines keep their employee, so employees with sales cannot be deleted."""
    def _op():
        employee = get_employee(employee_id)
        line_count = db.session.query(SaleLine).filter_by(employee_id=employee.id).count()
        if line_count:
            raise InvalidOperationError(
                f"Cannot delete employee. They are recorded on {line_count} sale line(s)."
            )
        db.session.delete(employee)
        db.session.commit()

    run_with_retry(_op)


# =============================================================================
# EMPLOYEE SERVICES (per-employee item assignments)
# =============================================================================

def list_employee_services(employee_id: int) -> list[EmployeeService]:
    employee = get_employee(employee_id)
    return (
        db.session.query(EmployeeService)
        .filter(EmployeeService.employee_id == employee.id)
        .order_by(EmployeeService.created_at.desc(), EmployeeService.id.desc())
        .all()
    )


def _get_employee_service(employee_id: int, service_id: int) -> EmployeeService:
    assignment = db.session.get(EmployeeService, service_id)
    if assignment is None or assignment.employee_id != employee_id:
        raise NotFoundError("Employee service not found")
    return assignment


def create_employee_service(employee_id: int, *, item_id: int, commission_rate) -> EmployeeService:
    def _op():
        employee = get_employee(employee_id)
        item = _load(Item, item_id, "Item")
        exists = (
            db.session.query(EmployeeService)
            .filter_by(employee_id=employee.id, item_id=item.id)
            .first()
        )
        if exists is not None:
            raise InvalidOperationError("Employee service already exists")

        assignment = EmployeeService(
            employee_id=employee.id,
            item_id=item.id,
            commission_rate=quantize_rate(commission_rate if commission_rate is not None else ZERO),
            is_active=True,
        )
        db.session.add(assignment)
        db.session.commit()
        return assignment

    return run_with_retry(_op)


def update_employee_service(employee_id: int, service_id: int, patch: dict) -> EmployeeService:
    def _op():
        assignment = _get_employee_service(employee_id, service_id)
        if patch.get("commission_rate") is not None:
            patch["commission_rate"] = quantize_rate(patch["commission_rate"])
        elif "commission_rate" in patch:
            raise ValidationError("commission_rate cannot be null")
        apply_patch(assignment, patch, EMPLOYEE_SERVICE_MUTABLE_FIELDS)
        db.session.commit()
        return assignment

    return run_with_retry(_op)


def delete_employee_service(employee_id: int, service_id: int) -> None:
    def _op():
        assignment = _get_employee_service(employee_id, service_id)
        db.session.delete(assignment)
        db.session.commit()

    run_with_retry(_op)


def list_item_employees(item_id: int) -> list[dict]:
    """Employees actively assigned to an item, with their rate for it."""
    item = _load(Item, item_id, "Item")
    rows = (
        db.session.query(EmployeeService, Employee)
        .join(Employee, Employee.id == EmployeeService.employee_id)
        .filter(EmployeeService.item_id == item.id, EmployeeService.is_active.is_(True))
        .order_by(Employee.name.asc())
        .all()
    )
    return [
        {
            "id": employee.id,
            "name": employee.name,
            "email": employee.email,
            "phone": employee.phone,
            "commission_rate": assignment.commission_rate,
        }
        for assignment, employee in rows
    ]


# =============================================================================
# CUSTOMERS
# =============================================================================


def list_customers(*, search: str | None = None) -> list[Customer]:
    q = db.session.query(Customer)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(
            db.or_(Customer.name.ilike(pattern), Customer.phone.ilike(pattern), Customer.email.ilike(pattern))
        )
    return q.order_by(Customer.name.asc()).all()


def get_customer(customer_id: int) -> Customer:
    return _load(Customer, customer_id, "Customer")


def create_customer(*, patch: dict) -> Customer:
    def _op():
        customer = Customer()
        apply_patch(customer, patch, CUSTOMER_MUTABLE_FIELDS)
        db.session.add(customer)
        db.session.commit()
        return customer

    return run_with_retry(_op)


def update_customer(customer_id: int, patch: dict) -> Customer:
    def _op():
        customer = get_customer(customer_id)
        apply_patch(customer, patch, CUSTOMER_MUTABLE_FIELDS)
        db.session.commit()
        return customer

    return run_with_retry(_op)
