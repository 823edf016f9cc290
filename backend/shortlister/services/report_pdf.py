from io import BytesIO
from datetime import datetime, timezone
from typing import Any, Dict, List

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from shortlister.models import CandidateAnalysis

# Theme colors (dark background + cyan accents, same as the HTML dashboard)
BG = colors.HexColor("#070A12")
CARD = colors.HexColor("#0B0F1A")
TEXT = colors.HexColor("#E7E9EE")
MUTED = colors.Color(231 / 255, 233 / 255, 238 / 255, alpha=0.70)
CYAN = colors.HexColor("#38C7D7")
RED = colors.HexColor("#EF4444")


def _esc(s) -> str:
    """Basic safe text for ReportLab Paragraph (avoids broken markup)."""
    if s is None:
        return ""
    s = str(s)
    s = s.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
    return s


def _years(value) -> str:
    try:
        x = float(value)
    except (TypeError, ValueError):
        return "—"
    return f"{x:g}y"


def build_pdf(job_description: str, ranked: List[CandidateAnalysis], summary: Dict[str, Any]) -> bytes:
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=36,
        rightMargin=36,
        topMargin=36,
        bottomMargin=36,
        title="Candidate Shortlist",
        author="Resume Shortlister",
    )

    styles = getSampleStyleSheet()
    title = ParagraphStyle(
        "title",
        parent=styles["Title"],
        fontName="Helvetica-Bold",
        fontSize=20,
        textColor=TEXT,
        spaceAfter=10,
    )
    h = ParagraphStyle(
        "h",
        parent=styles["Heading2"],
        fontName="Helvetica-Bold",
        fontSize=12,
        textColor=TEXT,
        spaceBefore=10,
        spaceAfter=6,
    )
    p = ParagraphStyle(
        "p",
        parent=styles["BodyText"],
        fontName="Helvetica",
        fontSize=10,
        textColor=MUTED,
        leading=14,
    )
    cell = ParagraphStyle(
        "cell",
        parent=styles["BodyText"],
        fontName="Helvetica",
        fontSize=9,
        textColor=TEXT,
        leading=12,
    )

    story = []

    story.append(Paragraph("Candidate Shortlist", title))
    story.append(Paragraph(f"Generated: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}", p))
    jd = job_description or ""
    if len(jd) > 400:
        jd = jd[:400] + "…"
    story.append(Paragraph(f"Job description: {_esc(jd)}", p))
    story.append(Spacer(1, 12))

    top = summary.get("top_candidate")
    kpi = Table(
        [
            ["Screened", "Average Score", "Top Match", "Failed"],
            [
                str(summary.get("total", 0)),
                f"{summary.get('average_score', 0)}%",
                f"{top.match_score}%" if top is not None else "—",
                str(summary.get("failed", 0)),
            ],
        ],
        colWidths=[120, 130, 120, 120],
    )
    kpi.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), CARD),
                ("TEXTCOLOR", (0, 0), (-1, 0), TEXT),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, 0), 10),
                ("BACKGROUND", (0, 1), (-1, 1), colors.Color(1, 1, 1, alpha=0.04)),
                ("TEXTCOLOR", (0, 1), (-1, 1), TEXT),
                ("FONTNAME", (0, 1), (-1, 1), "Helvetica-Bold"),
                ("FONTSIZE", (0, 1), (-1, 1), 12),
                ("GRID", (0, 0), (-1, -1), 0.6, colors.Color(1, 1, 1, alpha=0.12)),
                ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 10),
                ("TOPPADDING", (0, 0), (-1, -1), 10),
            ]
        )
    )
    story.append(kpi)
    story.append(Spacer(1, 14))

    # Ranking table
    story.append(Paragraph("Ranked Candidates", h))
    if not ranked:
        story.append(Paragraph("—", p))
    else:
        rows = [["#", "Candidate", "Score", "Exp", "Top Strengths"]]
        for i, c in enumerate(ranked, 1):
            strengths = ", ".join(c.key_strengths[:3]) if c.key_strengths else "—"
            rows.append([
                str(i),
                Paragraph(_esc(c.name), cell),
                f"{c.match_score}%",
                _years(c.experience_years),
                Paragraph(_esc(strengths), cell),
            ])

        rank_table = Table(rows, colWidths=[24, 150, 50, 40, 246])
        rank_table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), CARD),
                    ("TEXTCOLOR", (0, 0), (-1, 0), TEXT),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, 0), 9),
                    ("ALIGN", (2, 1), (3, -1), "CENTER"),
                    ("TEXTCOLOR", (0, 1), (-1, -1), TEXT),
                    ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
                    ("FONTSIZE", (0, 1), (-1, -1), 9),
                    ("BACKGROUND", (0, 1), (-1, -1), colors.Color(1, 1, 1, alpha=0.03)),
                    ("GRID", (0, 0), (-1, -1), 0.4, colors.Color(1, 1, 1, alpha=0.10)),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("TOPPADDING", (0, 0), (-1, -1), 8),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
                ]
            )
        )
        story.append(rank_table)
        story.append(Spacer(1, 10))

    # Per-candidate detail
    story.append(Paragraph("Candidate Details", h))
    for i, c in enumerate(ranked, 1):
        story.append(Paragraph(
            f"<font color='{CYAN.hexval()}'><b>{i}. {_esc(c.name)}</b></font> — {c.match_score}% · {_esc(c.file_name)}",
            p,
        ))
        if c.email or c.education_level:
            story.append(Paragraph(_esc(" · ".join(x for x in [c.email, c.education_level] if x)), p))
        story.append(Paragraph(_esc(c.summary), p))
        if not c.ok:
            story.append(Paragraph(f"<font color='{RED.hexval()}'>Error: {_esc(c.error_message)}</font>", p))
        if c.missing_skills:
            story.append(Paragraph(f"Missing: {_esc(', '.join(c.missing_skills[:5]))}", p))
        story.append(Spacer(1, 6))

    dist = summary.get("distribution", {}) or {}
    story.append(Paragraph("Score Distribution", h))
    story.append(Paragraph(
        f"Strong (85+): {dist.get('strong', 0)} · Good (70-84): {dist.get('good', 0)} · "
        f"Fair (50-69): {dist.get('fair', 0)} · Weak (&lt;50): {dist.get('weak', 0)}",
        p,
    ))
    story.append(Paragraph(f"Average experience: {summary.get('average_experience', 0)} years", p))

    # Dark background every page
    def on_page(canvas, _doc):
        canvas.saveState()
        canvas.setFillColor(BG)
        canvas.rect(0, 0, A4[0], A4[1], fill=1, stroke=0)

        # subtle top glow
        canvas.setFillColor(colors.Color(56 / 255, 199 / 255, 215 / 255, alpha=0.10))
        canvas.rect(0, A4[1] - 70, A4[0], 70, fill=1, stroke=0)

        canvas.restoreState()

    doc.build(story, onFirstPage=on_page, onLaterPages=on_page)
    return buf.getvalue()
