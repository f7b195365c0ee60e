import enum

class Role(str, enum.Enum):
    admin = "ADMIN"
    manager = "MANAGER"
    staff = "STAFF"

class TransactionType(str, enum.Enum):
    stock_in = "IN"
    stock_out = "OUT"
    adjustment = "ADJUSTMENT"
    reserved = "RESERVED"
    released = "RELEASED"

class ReferenceType(str, enum.Enum):
    purchase = "PURCHASE"
    sale = "SALE"
    adjustment = "ADJUSTMENT"
    stock_return = "RETURN"

class POStatus(str, enum.Enum):
    pending = "PENDING"
    confirmed = "CONFIRMED"
    received = "RECEIVED"
    cancelled = "CANCELLED"
