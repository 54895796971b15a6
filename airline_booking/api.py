from fastapi import HTTPException

from airline_booking.errors import HTTP_STATUS_BY_KIND, OperationResult

def unwrap(result: OperationResult):
    """Return the data of a successful result, or raise the matching HTTPException"""
    if result.success:
        return result.data

    raise HTTPException(
        status_code=HTTP_STATUS_BY_KIND[result.error.kind],
        detail=result.error.model_dump(mode="json")
    )
