from flask import flash, redirect, request, url_for

# Query parameters that keep the subject list filtered across redirects
LIST_FILTER_KEYS = ("department", "type", "year_level", "semester", "status", "search")


def redirect_with_flash(endpoint, category, message, **params):
    flash(message, category)
    return redirect(url_for(endpoint, **params))


def list_filters(source=None):
    """Non-empty list filters from ``source`` (defaults to the query string)."""
    source = request.args if source is None else source
    return {key: source.get(key).strip() for key in LIST_FILTER_KEYS if (source.get(key) or "").strip()}


def safe_int(value, default=None):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
