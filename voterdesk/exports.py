import csv
import io
from datetime import datetime
from html import escape
from typing import Iterable, Optional

from .schemas import VoterRecord


CSV_HEADERS = [
    "ID Card", "Full Name", "Gender", "Address", "Island", "Phone",
    "Party", "Status", "Sheema", "Sadiq", "Communicated", "Notes",
]

PRINT_HEADERS = ["ID Card", "Full Name", "Gender", "Island", "Address", "Phone", "Party", "Status"]


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def _status(v: VoterRecord) -> str:
    return "Voted" if v.has_voted else "Eligible"


def voters_csv(voters: Iterable[VoterRecord]) -> str:
    buf = io.StringIO()
    csv.writer(buf, lineterminator="\n").writerow(CSV_HEADERS)
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, doublequote=True, lineterminator="\n")
    for v in voters:
        writer.writerow([
            v.id_card_number,
            v.full_name,
            v.gender or "",
            v.address,
            v.island,
            v.phone_number or "",
            v.party,
            _status(v),
            _yes_no(v.sheema),
            _yes_no(v.sadiq),
            _yes_no(v.communicated),
            v.notes or "",
        ])
    return buf.getvalue()


def export_filename(prefix: str, ext: str, today: Optional[datetime] = None) -> str:
    today = today or datetime.now()
    return f"{prefix}_{today.strftime('%Y-%m-%d')}.{ext}"


_PAGE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
  body {{ font-family: -apple-system, "Segoe UI", Roboto, Helvetica, Arial, sans-serif; padding: 20px; }}
  h1 {{ margin-bottom: 10px; color: #111; }}
  .meta {{ margin-bottom: 20px; font-size: 12px; color: #666; }}
  table {{ width: 100%; border-collapse: collapse; font-size: 12px; }}
  th {{ text-align: left; padding: 8px; background-color: #f3f4f6; border-bottom: 2px solid #e5e7eb; }}
  td {{ padding: 8px; border-bottom: 1px solid #eee; }}
  .voted {{ background-color: #dcfce7; color: #166534; }}
  .eligible {{ background-color: #fef9c3; color: #854d0e; }}
  @media print {{ @page {{ margin: 1cm; size: landscape; }} }}
</style>
</head>
<body>
<h1>{heading}</h1>
<div class="meta">
<p>Generated on: {generated}</p>
<p>Total Records: {count}</p>
{filter_line}
</div>
<table>
<thead><tr>{head}</tr></thead>
<tbody>
{rows}
</tbody>
</table>
<script>window.onload = function() {{ window.print(); }}</script>
</body>
</html>
"""


def voters_print_html(
    voters: Iterable[VoterRecord],
    heading: str = "Voters Directory",
    query: Optional[str] = None,
    generated: Optional[datetime] = None,
) -> str:
    """Printable voter table; the page opens the print dialog when loaded."""
    voters = list(voters)
    rows = []
    for v in voters:
        cells = [
            v.id_card_number, v.full_name, v.gender or "-", v.island,
            v.address, v.phone_number or "-", v.party,
        ]
        status_class = "voted" if v.has_voted else "eligible"
        rows.append(
            "<tr>"
            + "".join(f"<td>{escape(c)}</td>" for c in cells)
            + f'<td><span class="{status_class}">{_status(v)}</span></td>'
            + "</tr>"
        )
    return _PAGE.format(
        title=escape(heading),
        heading=escape(heading),
        generated=(generated or datetime.now()).strftime("%Y-%m-%d %H:%M"),
        count=len(voters),
        filter_line=f'<p>Filter applied: "{escape(query)}"</p>' if query else "",
        head="".join(f"<th>{h}</th>" for h in PRINT_HEADERS),
        rows="\n".join(rows),
    )
