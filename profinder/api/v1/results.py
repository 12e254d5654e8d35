"""
Translation of ActionResult failures into HTTP errors.
"""
import logging

from fastapi import HTTPException, status

from profinder.core.errors import ActionResult, ErrorKind

logger = logging.getLogger(__name__)

# Precondition reasons that are authorization failures rather than state conflicts
FORBIDDEN_REASONS = frozenset({"not_sender"})


def raise_for_result(result: ActionResult) -> ActionResult:
    """
    Raise the HTTPException matching a failed result; pass successes through.

    Raises:
        HTTPException: 404 for NOT_FOUND, 409 or 403 for PRECONDITION_FAILED,
            500 for PARTIAL_WRITE_FAILURE

    Example:
        ```python
        result = raise_for_result(await service.block(current_user, user_id))
        return ActionResponse(success=True, state=result.data)
        ```
    """
    if result.ok:
        return result

    if result.kind == ErrorKind.NOT_FOUND:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"reason": result.reason, "message": result.detail},
        )

    if result.kind == ErrorKind.PRECONDITION_FAILED:
        code = (
            status.HTTP_403_FORBIDDEN
            if result.reason in FORBIDDEN_REASONS
            else status.HTTP_409_CONFLICT
        )
        raise HTTPException(
            status_code=code,
            detail={"reason": result.reason, "message": result.detail},
        )

    # Partial writes are logged in full and surfaced generically
    logger.error(f"Action failed ({result.kind}): {result.detail} {result.data}")
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"reason": result.reason, "message": "Something went wrong. Please try again."},
    )
