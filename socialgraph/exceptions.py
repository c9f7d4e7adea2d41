"""
Social graph service — domain-specific HTTP exceptions.

Four families with fixed status codes; every concrete error presets its
detail message so call sites never choose codes or wording:

  ValidationError     400  rejected before any write (self-reference, bad settings)
  AuthorizationError  403  a relationship forbids the action (blocked, limits)
  NotFoundError       404  missing edge / request / user
  ConflictError       409  duplicate edge or request; never retried automatically

ConsistencyError is not an HTTP error: it is raised only by the counter
reconciler and surfaces as a 500 through the error envelope middleware.
"""
from fastapi import HTTPException, status


# ── Families ──────────────────────────────────────────────────────────────────

class ValidationError(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class AuthorizationError(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ConsistencyError(RuntimeError):
    """Counter drift survived repeated repair — a non-atomic write slipped through."""

    def __init__(self, user_id, followers: tuple[int, int], following: tuple[int, int]) -> None:
        self.user_id = user_id
        self.followers = followers
        self.following = following
        super().__init__(
            f"Counter drift for user {user_id} persists after repair: "
            f"followers stored/actual={followers}, following stored/actual={following}"
        )


# ── Validation ────────────────────────────────────────────────────────────────

class SelfReferenceError(ValidationError):
    def __init__(self, detail: str = "You cannot perform this action on yourself.") -> None:
        super().__init__(detail)


class InvalidPrivacySettings(ValidationError):
    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("Invalid privacy settings: " + "; ".join(errors))


# ── Authorization ─────────────────────────────────────────────────────────────

class BlockedError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__("This action is not allowed because one of you has blocked the other.")


class FollowLimitExceeded(AuthorizationError):
    def __init__(self, limit: int) -> None:
        super().__init__(f"You have reached the maximum following limit ({limit:,}).")


class FollowRequestsDisabled(AuthorizationError):
    def __init__(self) -> None:
        super().__init__("This account is not accepting follow requests.")


class AdminRequired(AuthorizationError):
    def __init__(self) -> None:
        super().__init__("Administrator access required.")


class PrivateAccount(AuthorizationError):
    def __init__(self) -> None:
        super().__init__("This account is private.")


# ── Not found ─────────────────────────────────────────────────────────────────

class UserNotFound(NotFoundError):
    def __init__(self) -> None:
        super().__init__("User not found.")


class UserHiddenByBlock(NotFoundError):
    """Target is hidden from the viewer — 404 so that block state does not leak."""

    def __init__(self) -> None:
        super().__init__("User not found.")


class NotFollowingError(NotFoundError):
    def __init__(self) -> None:
        super().__init__("You are not following this user.")


class NotBlocked(NotFoundError):
    def __init__(self) -> None:
        super().__init__("You have not blocked this user.")


class FollowRequestNotFound(NotFoundError):
    """Missing, not addressed to the caller, or already approved/rejected/cancelled."""

    def __init__(self) -> None:
        super().__init__("Follow request not found.")


# ── Conflict ──────────────────────────────────────────────────────────────────

class AlreadyFollowingError(ConflictError):
    def __init__(self) -> None:
        super().__init__("You are already following this user.")


class AlreadyBlockedError(ConflictError):
    def __init__(self) -> None:
        super().__init__("You have already blocked this user.")


class FollowRequestAlreadyPending(ConflictError):
    def __init__(self) -> None:
        super().__init__("A follow request to this user is already pending.")
