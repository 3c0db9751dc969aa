import uuid

from fastapi import HTTPException, status


def validate_id(value: str, label: str = "id") -> str:
    """Reject path ids that are not canonical UUID strings with a 400."""
    try:
        return str(uuid.UUID(str(value)))
    except (ValueError, TypeError, AttributeError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {label} format"
        )
