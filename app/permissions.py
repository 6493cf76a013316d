"""
Access control for practice records.

The same rules apply to the record pages and to ChatNPT, so the assistant
never reveals a record the user could not open directly.
"""
from functools import wraps
from typing import Any, List, Optional, Tuple

from flask import jsonify
from flask_login import current_user, login_required

LEADERSHIP_QUESTION = "Leadership Question"

LEADERSHIP_DENIED = (
    "Access denied. Leadership Questions are only visible to the creator, "
    "practice leadership of the selected practice, and administrators."
)

# Record types visible to every authenticated user in the tenant
OPEN_SOURCES = {
    "webex_recordings",
    "webex_messages",
    "documentation",
    "resource_assignments",
    "sa_assignments",
    "sa_to_am_mappings",
    "training_certs",
    "companies",
    "contacts",
    "users",
    "practice_info",
    "releases",
}


def _same_email(a: Optional[str], b: Optional[str]) -> bool:
    return bool(a) and bool(b) and a.strip().lower() == b.strip().lower()


def can_access_issue(issue, user) -> bool:
    if user.is_admin:
        return True

    # Issue creator can always access their own issue
    if _same_email(issue.email, user.email):
        return True

    if issue.issue_type != LEADERSHIP_QUESTION:
        return True

    if issue.practice and issue.practice in (user.practices or []):
        return user.is_leadership

    return False


def filter_issues(issues: List[Any], user) -> List[Any]:
    return [i for i in issues if can_access_issue(i, user)]


def validate_issue_access(issue, user, action: str = "view") -> Tuple[bool, str, int]:
    """Check an action on an issue. Returns (ok, error, status_code)."""
    if not can_access_issue(issue, user):
        return False, LEADERSHIP_DENIED, 403

    if action == "edit":
        if not user.is_admin and not _same_email(issue.email, user.email):
            return False, "Only the issue creator or administrators can edit this issue.", 403
    elif action not in ("view", "comment", "upvote"):
        return False, "Invalid action specified.", 400

    return True, "", 200


def filter_records(source_key: str, records: List[Any], user) -> Tuple[List[Any], bool, Optional[str]]:
    """
    Filter records of one source type for a user.

    Returns (records, restricted, reason) so callers can tell the user that
    some results were withheld.
    """
    if source_key == "issues":
        filtered = filter_issues(records, user)
        restricted = len(filtered) < len(records)
        reason = "Some Leadership Questions are restricted to practice leadership" if restricted else None
        return filtered, restricted, reason

    if source_key in OPEN_SOURCES:
        return list(records), False, None

    return [], True, "Unknown data type"


def admin_required(f):
    """Decorator to require an administrator"""
    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if not current_user.is_admin:
            return jsonify({"ok": False, "error": "Administrator access required"}), 403
        return f(*args, **kwargs)
    return decorated_function
