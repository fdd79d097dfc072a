from .catalog import Category, Item, category_roles
from .staff import Role, Employee, EmployeeService, employee_roles
from .customers import Customer
from .inventory import InventoryRecord
from .sales import Sale, SaleLine
from .expenses import ExpenseCategory, Expense

__all__ = [
    'Category', 'Item', 'category_roles',
    'Role', 'Employee', 'EmployeeService', 'employee_roles',
    'Customer',
    'InventoryRecord',
    'Sale', 'SaleLine',
    'ExpenseCategory', 'Expense',
]
