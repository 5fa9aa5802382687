"""
docmodel Errors

Exception hierarchy shared by the registrar, the persister, the stores and
the cache collaborators.
"""


class ModelError(Exception):
    """Base exception for docmodel operations"""
    pass


class InvalidStateError(ModelError):
    """Raised when a persistence call is made on an unregistered modelable"""
    pass


class AlreadyCreatedError(ModelError):
    """Raised when create is called on a modelable that already has a key"""
    pass


class MissingKeyError(ModelError):
    """Raised when update or read is called on a modelable without a key"""
    pass


class SchemaError(ModelError):
    """Raised when a modelable type is declared in a way the engine cannot map"""
    pass


class UnaddressableFieldError(SchemaError):
    """Raised when a persistable field cannot be assigned through its instance"""

    def __init__(self, type_name: str, field_name: str):
        super().__init__(f"Unaddressable reference {field_name} in modelable {type_name}")
        self.type_name = type_name
        self.field_name = field_name


class StoreError(ModelError):
    """Raised by primary store implementations"""
    pass


class EntityNotFoundError(StoreError):
    """Raised when no entity exists for a key"""
    pass


class TransactionError(StoreError):
    """Raised when a store transaction cannot be run or committed"""
    pass


class TransactionConflictError(TransactionError):
    """Raised when a concurrent write invalidates a transaction"""
    pass


class CacheError(ModelError):
    """Raised by cache collaborators"""
    pass


class CacheMissError(CacheError):
    """Raised when a cache holds no value for a key"""
    pass
