from dataclasses import dataclass
from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


class ErrorCatalog:
    INVALID_TOKEN = ErrorDefinition("INVALID_TOKEN", "Invalid token", status.HTTP_401_UNAUTHORIZED)
    INVALID_CREDENTIALS = ErrorDefinition(
        "INVALID_CREDENTIALS",
        "Invalid credentials",
        status.HTTP_401_UNAUTHORIZED,
    )
    USER_INACTIVE = ErrorDefinition(
        "USER_INACTIVE",
        "User is inactive",
        status.HTTP_403_FORBIDDEN,
    )
    PERMISSION_DENIED = ErrorDefinition(
        "PERMISSION_DENIED",
        "Permission denied",
        status.HTTP_403_FORBIDDEN,
    )
    COMPANY_SCOPE_DENIED = ErrorDefinition(
        "COMPANY_SCOPE_DENIED",
        "Access to another client company is denied",
        status.HTTP_403_FORBIDDEN,
    )
    NOT_FOUND = ErrorDefinition("NOT_FOUND", "Resource not found", status.HTTP_404_NOT_FOUND)
    VALIDATION_ERROR = ErrorDefinition(
        "VALIDATION_ERROR",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    INVALID_STATUS_TRANSITION = ErrorDefinition(
        "INVALID_STATUS_TRANSITION",
        "Status transition not allowed",
        status.HTTP_409_CONFLICT,
    )
    SHIPMENT_NOT_EDITABLE = ErrorDefinition(
        "SHIPMENT_NOT_EDITABLE",
        "Shipment can no longer be edited",
        status.HTTP_409_CONFLICT,
    )
    LAPTOP_ALREADY_IN_ACTIVE_SHIPMENT = ErrorDefinition(
        "LAPTOP_ALREADY_IN_ACTIVE_SHIPMENT",
        "Laptop is already in an active shipment",
        status.HTTP_409_CONFLICT,
    )
    COMPANY_MISMATCH = ErrorDefinition(
        "COMPANY_MISMATCH",
        "Laptop belongs to a different client company",
        status.HTTP_409_CONFLICT,
    )
    NOT_BULK_SHIPMENT = ErrorDefinition(
        "NOT_BULK_SHIPMENT",
        "Laptops can only be added to bulk shipments",
        status.HTTP_409_CONFLICT,
    )
    REPORT_ALREADY_APPROVED = ErrorDefinition(
        "REPORT_ALREADY_APPROVED",
        "Reception report is already approved",
        status.HTTP_409_CONFLICT,
    )
    DUPLICATE_SERIAL_NUMBER = ErrorDefinition(
        "DUPLICATE_SERIAL_NUMBER",
        "A laptop with this serial number already exists",
        status.HTTP_409_CONFLICT,
    )
    DB_UNAVAILABLE = ErrorDefinition(
        "DB_UNAVAILABLE",
        "Database unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    LOCK_TIMEOUT = ErrorDefinition(
        "LOCK_TIMEOUT",
        "Lock wait timeout",
        status.HTTP_409_CONFLICT,
    )
    INTERNAL_ERROR = ErrorDefinition(
        "INTERNAL_ERROR",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


class AppError(Exception):
    def __init__(self, error: ErrorDefinition, details: object | None = None):
        self.error = error
        self.details = details
        super().__init__(error.message)


def validation_error(message: str, **extra) -> AppError:
    details = {"message": message}
    details.update(extra)
    return AppError(ErrorCatalog.VALIDATION_ERROR, details=details)
