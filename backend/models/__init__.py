from models.suppliers import Supplier, SupplierCategory
from models.transactions import Transaction, TransactionType
from models.users import User
from models.audit_log import AuditLog

__all__ = ['AuditLog', 'Supplier', 'SupplierCategory', 'Transaction', 'TransactionType', 'User']
