import io
import logging
from datetime import datetime

import pandas as pd
from fpdf import FPDF

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("csv", "excel", "pdf")

# row key -> column heading
SUBJECT_COLUMNS = {
    "subject_code": "Code",
    "subject_name": "Name",
    "department": "Department",
    "type": "Type",
    "credits": "Credits",
    "duration_hours": "Hours",
    "semester": "Semester",
    "year_level": "Year",
    "assigned_faculty_count": "Faculty",
    "enrolled_students_count": "Students",
    "status": "Status",
}

MIMETYPES = {
    "csv": "text/csv",
    "excel": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "pdf": "application/pdf",
}

EXTENSIONS = {"csv": "csv", "excel": "xlsx", "pdf": "pdf"}


def subjects_dataframe(subjects):
    rows = []
    for subject in subjects:
        row = {key: subject.get(key) for key in SUBJECT_COLUMNS if key != "status"}
        row["status"] = "Active" if subject.get("is_active") else "Inactive"
        rows.append(row)
    df = pd.DataFrame(rows, columns=list(SUBJECT_COLUMNS))
    return df.rename(columns=SUBJECT_COLUMNS)


def _latin1(value):
    text = "" if value is None or (isinstance(value, float) and pd.isna(value)) else str(value)
    # Core PDF fonts only cover latin-1
    return text.encode("latin-1", "replace").decode("latin-1")


def _render_pdf(df, title):
    pdf = FPDF(orientation="L")
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 14)
    pdf.cell(0, 10, _latin1(title), align="C")
    pdf.ln(12)

    col_width = (pdf.w - pdf.l_margin - pdf.r_margin) / max(len(df.columns), 1)

    pdf.set_font("Helvetica", "B", 9)
    for col in df.columns:
        pdf.cell(col_width, 8, _latin1(col), border=1, align="C")
    pdf.ln()

    pdf.set_font("Helvetica", size=8)
    for _, row in df.iterrows():
        for item in row:
            pdf.cell(col_width, 7, _latin1(item)[:40], border=1, align="C")
        pdf.ln()

    return bytes(pdf.output())


def export_subjects(subjects, file_format="csv", title="Subjects"):
    """Render subject rows to ``(buffer, mimetype, download_name)``."""
    if file_format not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {file_format}")

    df = subjects_dataframe(subjects)
    output = io.BytesIO()

    if file_format == "excel":
        with pd.ExcelWriter(output, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Subjects")
    elif file_format == "pdf":
        generated = datetime.now().strftime("%Y-%m-%d %H:%M")
        output.write(_render_pdf(df, f"{title} ({generated})"))
    else:
        output.write(df.to_csv(index=False).encode("utf-8"))

    output.seek(0)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    download_name = f"subjects_{stamp}.{EXTENSIONS[file_format]}"
    logger.info("Exported %d subject(s) as %s", len(df), file_format)
    return output, MIMETYPES[file_format], download_name
