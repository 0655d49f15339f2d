"""User-facing message catalog.

Hebrew is the site's primary language; English is provided for operators
and API clients that ask for it.
"""

from __future__ import annotations

import math

_CATALOG: dict[str, dict[str, str]] = {
    "he": {
        "login_success": "התחברות הצליחה",
        "logout_success": "התנתקת בהצלחה",
        "password_required": "סיסמה נדרשת",
        "invalid_password": "סיסמה שגויה. נותרו {remaining} ניסיונות.",
        "invalid_password_locked": "סיסמה שגויה. חשבונך נחסם זמנית.",
        "rate_limited": "ניסיתם להתחבר יותר מדי פעמים. נסו שוב בעוד {time_remaining}.",
        "unauthenticated": "נדרשת התחברות כמנהל",
        "session_active": "הפעלה פעילה",
        "session_missing": "אין הפעלה פעילה",
        "validation_error": "הנתונים שנשלחו אינם תקינים",
        "not_found": "{resource} לא נמצא",
        "slug_taken": "מזהה ייחודי זה כבר קיים במערכת",
        "server_error": "אירעה שגיאת שרת. נסה שוב מאוחר יותר.",
        "already_published": "המנה כבר פורסמה",
        "publish_incomplete": "לא ניתן לפרסם מנה ללא כותרת, קטגוריה ומחיר",
        "category_in_use": "לא ניתן למחוק קטגוריה עם {count} מנות. יש להעביר את המנות לקטגוריה אחרת תחילה.",
        "settings_updated": "ההגדרות עודכנו בהצלחה",
        "persons_range": "מינימום סועדים לא יכול להיות גדול ממקסימום סועדים",
        "unknown_dishes": "מנות לא נמצאו: {ids}",
        "bulk_deleted": "{count} מנות נמחקו בהצלחה",
        "bulk_category_assigned": "{count} מנות שויכו לקטגוריה",
        "bulk_added_to_bundles": "{dishes} מנות נוספו ל-{bundles} מגשים",
        "minute_one": "דקה אחת",
        "minute_two": "שתי דקות",
        "minute_many": "{minutes} דקות",
    },
    "en": {
        "login_success": "Logged in successfully",
        "logout_success": "Logged out",
        "password_required": "Password is required",
        "invalid_password": "Invalid password. {remaining} attempts remaining.",
        "invalid_password_locked": "Invalid password. Access is temporarily blocked.",
        "rate_limited": "Too many login attempts. Try again in {time_remaining}.",
        "unauthenticated": "Admin login required",
        "session_active": "Session active",
        "session_missing": "No active session",
        "validation_error": "The submitted data is invalid",
        "not_found": "{resource} not found",
        "slug_taken": "This slug is already in use",
        "server_error": "A server error occurred. Please try again later.",
        "already_published": "The dish is already published",
        "publish_incomplete": "A dish needs a title, category and price before publishing",
        "category_in_use": "Cannot delete a category used by {count} dishes. Move them to another category first.",
        "settings_updated": "Settings updated",
        "persons_range": "Minimum persons cannot be greater than maximum persons",
        "unknown_dishes": "Unknown dishes: {ids}",
        "bulk_deleted": "{count} dishes deleted",
        "bulk_category_assigned": "{count} dishes moved to the category",
        "bulk_added_to_bundles": "{dishes} dishes added to {bundles} bundles",
        "minute_one": "1 minute",
        "minute_two": "2 minutes",
        "minute_many": "{minutes} minutes",
    },
}

DEFAULT_LOCALE = "he"


def message(key: str, locale: str = DEFAULT_LOCALE, **params: object) -> str:
    """Return the localized message for *key*, falling back to Hebrew."""
    table = _CATALOG.get(locale, _CATALOG[DEFAULT_LOCALE])
    template = table.get(key) or _CATALOG[DEFAULT_LOCALE][key]
    return template.format(**params) if params else template


def format_time_remaining(ms: int, locale: str = DEFAULT_LOCALE) -> str:
    """Render a remaining duration as whole minutes, rounded up."""
    minutes = max(1, math.ceil(ms / 1000 / 60))
    if minutes == 1:
        return message("minute_one", locale)
    if minutes == 2:
        return message("minute_two", locale)
    return message("minute_many", locale, minutes=minutes)
