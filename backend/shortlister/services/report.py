from __future__ import annotations
from typing import Dict, Any, List
from datetime import datetime, timezone
from html import escape

from shortlister.models import CandidateAnalysis
from shortlister.services.ranking import score_band

BAND_COLORS = {
    "strong": "#22c55e",
    "good": "#3b82f6",
    "fair": "#eab308",
    "weak": "#ef4444",
}


def render_html_report(job_description: str, ranked: List[CandidateAnalysis], summary: Dict[str, Any]) -> str:
    now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    top = summary.get("top_candidate")
    dist = summary.get("distribution", {})

    def chips(items, cls):
        return "".join([f'<span class="chip {cls}">{escape(x)}</span>' for x in items[:3]]) or '<span class="muted">—</span>'

    cards = ""
    for i, c in enumerate(ranked, 1):
        color = BAND_COLORS[score_band(c.match_score)]
        err = f'<div class="err">{escape(c.error_message or "")}</div>' if not c.ok else ""
        cards += f"""
        <div class="card">
          <div class="head">
            <div class="title">{i}. {escape(c.name)}</div>
            <div class="badge" style="border-color:{color};color:{color};">{c.match_score}% Match</div>
          </div>
          <div class="muted">{escape(c.file_name)}{" · " + escape(c.email) if c.email else ""} · Exp {c.experience_years}y</div>
          <div class="detail">{escape(c.summary)}</div>
          {err}
          <div class="grid2">
            <div><div class="muted">Strengths</div>{chips(c.key_strengths, "good")}</div>
            <div><div class="muted">Missing / Weakness</div>{chips(c.missing_skills, "bad")}</div>
          </div>
        </div>
        """

    bars = ""
    for c in ranked:
        color = BAND_COLORS[score_band(c.match_score)]
        bars += f"""
        <div class="bar-row">
          <div class="bar-label">{escape(c.name)}</div>
          <div class="bar-track"><div class="bar" style="width:{c.match_score}%;background:{color};"></div></div>
          <div class="bar-val">{c.match_score}</div>
        </div>
        """

    top_html = "<div class='muted'>—</div>"
    top_insight = ""
    if top is not None:
        top_insight = f"<li>Top candidate <b>{escape(top.name)}</b> matches {top.match_score}% of requirements.</li>"
        top_html = f"""
        <div class="kpi">{escape(top.name)}</div>
        <div class="muted">{escape(top.education_level or "")}</div>
        <div class="kpi gold">{top.match_score}%</div>
        """

    html = f"""
<!doctype html>
<html>
<head>
  <meta charset="utf-8"/>
  <meta name="viewport" content="width=device-width, initial-scale=1"/>
  <title>Candidate Shortlist</title>
  <style>
    body {{
      font-family: ui-sans-serif, system-ui, -apple-system, Segoe UI, Roboto, Arial;
      background: #070A12;
      color: #E7E9EE;
      margin: 0; padding: 24px;
    }}
    .wrap {{ max-width: 1100px; margin: 0 auto; }}
    .hero {{
      background: radial-gradient(900px 300px at 10% 0%, rgba(59,130,246,0.18), transparent 60%),
                  #0B0F1A;
      border: 1px solid rgba(255,255,255,0.08);
      border-radius: 18px;
      padding: 18px;
    }}
    .grid3 {{ display: grid; grid-template-columns: repeat(3, 1fr); gap: 14px; margin-top: 14px; }}
    .grid2 {{ display: grid; grid-template-columns: 1fr 1fr; gap: 10px; margin-top: 8px; }}
    .row {{ display: grid; grid-template-columns: 2fr 1fr; gap: 14px; margin-top: 14px; }}
    .panel {{
      background: rgba(255,255,255,0.03);
      border: 1px solid rgba(255,255,255,0.08);
      border-radius: 16px;
      padding: 14px;
    }}
    .kpi {{ font-size: 28px; font-weight: 800; letter-spacing: -0.02em; }}
    .muted {{ color: rgba(231,233,238,0.7); font-size: 13px; }}
    .gold {{ color: #D4AF37; }}
    .card {{
      background: rgba(255,255,255,0.03);
      border: 1px solid rgba(255,255,255,0.08);
      border-radius: 16px;
      padding: 12px;
      margin-bottom: 10px;
    }}
    .head {{ display: flex; justify-content: space-between; align-items: center; }}
    .title {{ font-weight: 700; }}
    .badge {{ font-size: 12px; padding: 3px 10px; border-radius: 999px; border: 1px solid; }}
    .detail {{ color: rgba(231,233,238,0.75); font-size: 13px; line-height: 1.4; margin-top: 6px; }}
    .err {{ color: #ef4444; font-size: 12px; margin-top: 6px; }}
    .chip {{ display: inline-block; font-size: 11px; padding: 2px 8px; border-radius: 6px; margin: 3px 3px 0 0; }}
    .chip.good {{ background: rgba(34,197,94,0.12); color: #22c55e; }}
    .chip.bad {{ background: rgba(239,68,68,0.12); color: #ef4444; }}
    .bar-row {{ display: grid; grid-template-columns: 110px 1fr 30px; gap: 8px; align-items: center; margin: 6px 0; font-size: 12px; }}
    .bar-label {{ overflow: hidden; white-space: nowrap; text-overflow: ellipsis; }}
    .bar-track {{ background: rgba(255,255,255,0.06); border-radius: 4px; height: 10px; }}
    .bar {{ height: 10px; border-radius: 4px; }}
    ul {{ margin: 8px 0 0 18px; }}
    @media (max-width: 820px) {{
      .row, .grid3, .grid2 {{ grid-template-columns: 1fr; }}
    }}
  </style>
</head>
<body>
  <div class="wrap">
    <div class="hero">
      <div class="muted">Generated: {now}</div>
      <h1 style="margin:8px 0 0; font-size: 22px;">Candidate Shortlist</h1>
      <div class="muted">{escape(job_description[:300])}</div>
    </div>

    <div class="grid3">
      <div class="panel">
        <div class="muted">Candidates Screened</div>
        <div class="kpi">{summary.get("total", 0)}</div>
        <div class="muted">{summary.get("success", 0)} analyzed · {summary.get("failed", 0)} failed</div>
      </div>
      <div class="panel">
        <div class="muted">Average Match Score</div>
        <div class="kpi">{summary.get("average_score", 0)}%</div>
      </div>
      <div class="panel">
        <div class="muted">Top Match</div>
        {top_html}
      </div>
    </div>

    <div class="row">
      <div class="panel">
        <div class="muted">Ranked Candidates</div>
        <div style="margin-top:10px;">{cards or "<div class='muted'>—</div>"}</div>
      </div>
      <div>
        <div class="panel">
          <div class="muted">Score Distribution</div>
          {bars or "<div class='muted'>—</div>"}
          <ul>
            <li>Strong (85+): {dist.get("strong", 0)}</li>
            <li>Good (70-84): {dist.get("good", 0)}</li>
            <li>Fair (50-69): {dist.get("fair", 0)}</li>
            <li>Weak (&lt;50): {dist.get("weak", 0)}</li>
          </ul>
        </div>
        <div class="panel" style="margin-top:14px;">
          <div class="muted">Quick Insights</div>
          <ul>
            {top_insight}
            <li>Average experience level is {summary.get("average_experience", 0)} years.</li>
            <li>Processed {summary.get("total", 0)} resumes in total.</li>
          </ul>
        </div>
      </div>
    </div>
  </div>
</body>
</html>
"""
    return html
