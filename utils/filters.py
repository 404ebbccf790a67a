from markupsafe import Markup, escape

TYPE_LABELS = {
    "theory": "Theory",
    "practical": "Practical",
    "lab": "Laboratory",
}


def type_label(value):
    return TYPE_LABELS.get(value, (value or "").capitalize())


def status_badge(is_active):
    if is_active:
        return Markup('<span class="badge badge-active">Active</span>')
    return Markup('<span class="badge badge-inactive">Inactive</span>')


def type_badge(value):
    return Markup(f'<span class="badge badge-{escape(value)}">{escape(type_label(value))}</span>')


def year_label(value):
    return f"Year {value}" if value else ""


def register_filters(app):
    app.add_template_filter(type_label)
    app.add_template_filter(type_badge)
    app.add_template_filter(status_badge)
    app.add_template_filter(year_label)
