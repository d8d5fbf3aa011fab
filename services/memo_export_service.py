"""
Memo Export Service

Renders generated memos (Markdown text) to DOCX and PDF.
Uses python-docx for DOCX and reportlab for PDF generation.
"""

import io
import re
from xml.sax.saxutils import escape

from docx import Document
from docx.shared import Pt, RGBColor
from docx.enum.text import WD_COLOR_INDEX

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, HRFlowable

# Unfilled fields are rendered as [field_name] by the template engine
GAP_PATTERN = re.compile(r'(\[[^\]]+\])')
BOLD_PATTERN = re.compile(r'\*\*([^*]+)\*\*')
HEADING_PATTERN = re.compile(r'^(#{1,3})\s+(.*)$')
BULLET_PATTERN = re.compile(r'^[-*]\s+(.*)$')


def _parse_line(line):
    """Classify a markdown line as (kind, level, text)"""
    heading = HEADING_PATTERN.match(line)
    if heading:
        return 'heading', len(heading.group(1)), heading.group(2)
    if line.strip() == '---':
        return 'rule', 0, ''
    bullet = BULLET_PATTERN.match(line)
    if bullet:
        return 'bullet', 0, bullet.group(1)
    return 'text', 0, line


# ============================================================================
# DOCX
# ============================================================================

def _add_docx_runs(paragraph, text):
    """Add text to a paragraph, bolding **spans** and highlighting [gaps]."""
    for part in GAP_PATTERN.split(text):
        if not part:
            continue
        if GAP_PATTERN.fullmatch(part):
            run = paragraph.add_run(part)
            run.font.highlight_color = WD_COLOR_INDEX.YELLOW
            run.font.color.rgb = RGBColor(128, 0, 0)
            run.font.bold = True
            continue
        for i, bold_part in enumerate(part.split('**')):
            if bold_part:
                run = paragraph.add_run(bold_part)
                if i % 2 == 1:  # Odd indices are between ** markers
                    run.bold = True


def generate_docx(content: str, title: str) -> io.BytesIO:
    """
    Generate a DOCX file from memo content.

    Args:
        content: The memo's Markdown content
        title: Document title stored in the core properties

    Returns:
        BytesIO object containing the DOCX file
    """
    doc = Document()
    doc.core_properties.title = title

    style = doc.styles['Normal']
    style.font.name = 'Calibri'
    style.font.size = Pt(11)

    for line in (content or '').split('\n'):
        line = line.rstrip()
        if not line.strip():
            continue

        kind, level, text = _parse_line(line)
        if kind == 'heading':
            paragraph = doc.add_heading(level=level)
            _add_docx_runs(paragraph, text)
        elif kind == 'rule':
            doc.add_paragraph('_' * 40)
        elif kind == 'bullet':
            paragraph = doc.add_paragraph(style='List Bullet')
            _add_docx_runs(paragraph, text)
        else:
            paragraph = doc.add_paragraph()
            _add_docx_runs(paragraph, text)

    buffer = io.BytesIO()
    doc.save(buffer)
    buffer.seek(0)
    return buffer


# ============================================================================
# PDF
# ============================================================================

def _to_pdf_markup(text):
    """Escape for reportlab Paragraph markup, then apply bold and gap highlighting."""
    text = escape(text)
    text = BOLD_PATTERN.sub(r'<b>\1</b>', text)
    return GAP_PATTERN.sub(r'<font color="#800000"><b>\1</b></font>', text)


def generate_pdf(content: str, title: str) -> io.BytesIO:
    """
    Generate a PDF file from memo content.

    Args:
        content: The memo's Markdown content
        title: Document title stored in the PDF metadata

    Returns:
        BytesIO object containing the PDF file
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=letter, title=title,
                            rightMargin=72, leftMargin=72,
                            topMargin=72, bottomMargin=72)

    styles = getSampleStyleSheet()
    heading_styles = {
        1: ParagraphStyle('MemoTitle', parent=styles['Heading1'], fontName='Helvetica-Bold',
                          fontSize=18, spaceAfter=16, leading=22),
        2: ParagraphStyle('MemoHeading', parent=styles['Heading2'], fontName='Helvetica-Bold',
                          fontSize=14, spaceBefore=14, spaceAfter=8, leading=17),
        3: ParagraphStyle('MemoSubheading', parent=styles['Heading3'], fontName='Helvetica-Bold',
                          fontSize=12, spaceBefore=10, spaceAfter=6, leading=14),
    }
    normal_style = ParagraphStyle('MemoNormal', parent=styles['Normal'], fontName='Helvetica',
                                  fontSize=10.5, spaceAfter=6, leading=13)
    bullet_style = ParagraphStyle('MemoBullet', parent=normal_style, leftIndent=14, bulletIndent=4)

    story = []
    for line in (content or '').split('\n'):
        line = line.rstrip()
        if not line.strip():
            story.append(Spacer(1, 6))
            continue

        kind, level, text = _parse_line(line)
        if kind == 'heading':
            story.append(Paragraph(_to_pdf_markup(text), heading_styles[level]))
        elif kind == 'rule':
            story.append(HRFlowable(width='100%', thickness=0.5, color=colors.grey,
                                    spaceBefore=6, spaceAfter=6))
        elif kind == 'bullet':
            story.append(Paragraph(_to_pdf_markup(text), bullet_style, bulletText='•'))
        else:
            story.append(Paragraph(_to_pdf_markup(text), normal_style))

    if not story:
        story.append(Spacer(1, 12))

    doc.build(story)
    buffer.seek(0)
    return buffer
