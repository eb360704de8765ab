import csv
import io
import json
from collections import Counter

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from .domain import isoformat, utcnow


def count_findings(events):
    return Counter(f.type for e in events for f in e.findings)


def generate_csv(events):
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(['timestamp', 'findings', 'gaze', 'audio'])
    for e in events:
        writer.writerow([
            isoformat(e.timestamp),
            ';'.join(f"{f.type}:{f.severity}" for f in e.findings),
            json.dumps(e.gaze.to_dict()) if e.gaze else '',
            json.dumps(e.audio.to_dict()) if e.audio else '',
        ])
    return output.getvalue().encode('utf-8')


def _event_line(e):
    findings = ', '.join(f"{f.type} ({f.severity}, {f.confidence:.2f})" for f in e.findings) or 'no findings'
    sources = '+'.join(name for name, sample in (('gaze', e.gaze), ('audio', e.audio)) if sample) or '-'
    return f"{isoformat(e.timestamp)} | {sources} | {findings}"


def generate_pdf(events, session):
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=letter)
    width, height = letter
    c.setFont('Helvetica-Bold', 16)
    c.drawString(30, height - 40, f"Proctoring Report - Session {session.id}")
    c.setFont('Helvetica', 10)
    y = height - 80
    counts = count_findings(events)
    summary = [
        f"Generated: {utcnow().isoformat()} UTC",
        f"User: {session.user_id} | Call: {session.external_call_id} ({session.call_platform})",
        f"Status: {session.status} | Started: {isoformat(session.start_time)} | Ended: {isoformat(session.end_time) or '-'}",
        f"Monitoring events: {len(events)}",
        f"Gaze away findings: {counts.get('gaze_away', 0)}",
        f"Multiple voices findings: {counts.get('multiple_voices', 0)}",
    ]
    for line in summary:
        c.drawString(30, y, line)
        y -= 16
    y -= 10
    # one line per event
    c.setFont('Helvetica', 9)
    for e in events:
        if y < 60:
            c.showPage()
            c.setFont('Helvetica', 9)
            y = height - 40
        c.drawString(30, y, _event_line(e)[:140])
        y -= 14
    c.save()
    buffer.seek(0)
    return buffer.read()
