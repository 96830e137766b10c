"""Error categories raised by the ledger core and mapped to HTTP responses in main.py."""


class LedgerError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Input was rejected before anything was persisted."""
    status_code = 400


class NotFoundError(LedgerError):
    status_code = 404


class SupplierNotFoundError(NotFoundError):
    def __init__(self, supplier_id: int):
        super().__init__(f"Supplier {supplier_id} not found")
        self.supplier_id = supplier_id


class TransactionNotFoundError(NotFoundError):
    def __init__(self, transaction_id: int):
        super().__init__(f"Transaction {transaction_id} not found")
        self.transaction_id = transaction_id


class PersistenceError(LedgerError):
    """The database failed mid-operation; the unit of work was rolled back."""
    status_code = 500
