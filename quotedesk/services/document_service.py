"""
Quotation documents - PDF rendering and publication.

Rendering always runs after the quotation has been committed. A failed
render or upload leaves the quotation in place with document_error set,
and can be retried with publish_quotation_document().
"""
import logging
from decimal import Decimal
from html import escape
from io import BytesIO
from typing import Any, Callable, Dict, Optional

from flask import current_app
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy.orm import Session

from quotedesk.exceptions import DownstreamRenderError
from quotedesk.services.pricing_service import sort_for_display, to_decimal
from quotedesk.services.quotation_service import (
    get_quotation, record_document_error, update_document_url
)
from quotedesk.utils.formatters import date_in, rupees

logger = logging.getLogger(__name__)

PRIMARY = colors.HexColor('#2C3E50')
ACCENT = colors.HexColor('#3498DB')
MUTED = colors.HexColor('#7F8C8D')
GRID = colors.HexColor('#BDC3C7')
STRIPE = colors.HexColor('#ECF0F1')


def business_info_from_config() -> Dict[str, Any]:
    config = current_app.config
    return {
        'name': config.get('BUSINESS_NAME'),
        'address': config.get('BUSINESS_ADDRESS'),
        'phone': config.get('BUSINESS_PHONE'),
        'email': config.get('BUSINESS_EMAIL'),
    }


def _price_table(prices, total_label='On-Road Total'):
    rows = [['Particulars', 'Amount']]
    total = Decimal('0.00')
    for entry in sort_for_display(prices):
        label = entry['header_key'] if entry['header_key'] != 'deleted' else 'Other charges'
        rows.append([label, rupees(entry['value'], 2)])
        total += to_decimal(entry['value'])
    rows.append([total_label, rupees(total, 2)])

    table = Table(rows, colWidths=[4.2 * inch, 2.2 * inch])
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), ACCENT),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
        ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ('GRID', (0, 0), (-1, -1), 0.5, GRID),
        ('ROWBACKGROUNDS', (0, 1), (-1, -2), [colors.white, STRIPE]),
    ]))
    return table


def render_quotation_pdf(snapshot: Dict[str, Any], business_info: Optional[Dict[str, Any]] = None) -> BytesIO:
    """
    Render a quotation snapshot to PDF.

    Only the snapshot is read, never live catalog data, so a quotation
    renders the same way however often it is regenerated.
    """
    business_info = business_info or {}
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75 * inch,
        leftMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title=snapshot['quotation_number']
    )

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'QuotationTitle',
        parent=styles['Heading1'],
        fontSize=22,
        textColor=PRIMARY,
        spaceAfter=12,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )
    header_style = ParagraphStyle(
        'QuotationHeader',
        parent=styles['Normal'],
        fontSize=10,
        textColor=MUTED,
        alignment=TA_CENTER,
        spaceAfter=6
    )
    section_style = ParagraphStyle(
        'Section',
        parent=styles['Heading3'],
        textColor=PRIMARY,
        spaceBefore=10,
        spaceAfter=6
    )
    body_style = styles['Normal']

    # 1. Title and dealership header
    branch = (snapshot.get('user_details') or {}).get('branch') or {}
    elements.append(Paragraph("QUOTATION", title_style))
    if business_info.get('name'):
        elements.append(Paragraph(f"<b>{escape(business_info['name'])}</b>", header_style))
    if branch.get('name'):
        location = ', '.join(p for p in (branch.get('address'), branch.get('city'), branch.get('state')) if p)
        elements.append(Paragraph(escape(f"{branch['name']} - {location}" if location else branch['name']), header_style))

    contact_parts = []
    phone = branch.get('phone') or business_info.get('phone')
    email = branch.get('email') or business_info.get('email')
    if phone:
        contact_parts.append(f"Tel: {phone}")
    if email:
        contact_parts.append(f"Email: {email}")
    if contact_parts:
        elements.append(Paragraph(escape(" | ".join(contact_parts)), header_style))
    if branch.get('gst_number'):
        elements.append(Paragraph(escape(f"GSTIN: {branch['gst_number']}"), header_style))

    elements.append(Spacer(1, 0.25 * inch))

    # 2. Quotation and customer details
    customer = snapshot.get('customer_details') or {}
    user = snapshot.get('user_details') or {}
    info_rows = [
        ['Quotation No:', snapshot['quotation_number']],
        ['Date:', date_in(snapshot.get('created_at'))],
    ]
    if snapshot.get('valid_until'):
        info_rows.append(['Valid Until:', date_in(snapshot['valid_until'])])
    info_rows.append(['Customer:', customer.get('name', '-')])
    info_rows.append(['Address:', ', '.join(
        p for p in (customer.get('address'), customer.get('taluka'), customer.get('district')) if p
    ) or '-'])
    mobiles = ' / '.join(m for m in (customer.get('mobile1'), customer.get('mobile2')) if m)
    info_rows.append(['Mobile:', mobiles or '-'])
    if snapshot.get('expected_delivery_date'):
        info_rows.append(['Expected Delivery:', date_in(snapshot['expected_delivery_date'])])
    info_rows.append(['Finance:', 'Required' if snapshot.get('finance_needed') else 'Not required'])
    info_rows.append(['Sales Executive:', user.get('full_name') or user.get('username') or '-'])

    info_table = Table(
        [[label, Paragraph(escape(str(value)), body_style)] for label, value in info_rows],
        colWidths=[1.8 * inch, 4.6 * inch]
    )
    info_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#34495E')),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
    ]))
    elements.append(info_table)

    # 3. One price table per selected model
    for model in snapshot.get('models') or []:
        heading = model['model_name']
        if model.get('is_base_model'):
            heading += ' (base model)'
        elements.append(Paragraph(escape(heading), section_style))
        if model.get('prices'):
            elements.append(_price_table(model['prices']))
        else:
            elements.append(Paragraph('Prices not available at this branch.', body_style))

        for offer in model.get('offers') or []:
            text = f"<b>Offer:</b> {escape(offer['title'])}"
            if offer.get('description'):
                text += f" - {escape(offer['description'])}"
            elements.append(Paragraph(text, body_style))

    # 4. Base model for comparison
    base_model = snapshot.get('base_model')
    if base_model:
        elements.append(Paragraph(
            escape(f"Compare with {base_model['model_name']} (base model of the {base_model['series']} series)"),
            section_style
        ))
        elements.append(_price_table(base_model.get('prices') or []))

    # 5. Documents required for finance
    finance_documents = snapshot.get('finance_documents') or []
    if snapshot.get('finance_needed') and finance_documents:
        elements.append(Paragraph('Documents Required for Finance', section_style))
        for document in finance_documents:
            marker = ' (required)' if document.get('is_required') else ''
            elements.append(Paragraph(escape(f"- {document['name']}{marker}"), body_style))

    # 6. Terms and notes
    terms = snapshot.get('terms_conditions') or []
    if terms:
        elements.append(Paragraph('Terms &amp; Conditions', section_style))
        for index, term in enumerate(terms, start=1):
            elements.append(Paragraph(f"{index}. <b>{escape(term.get('title') or '')}</b>: {escape(term.get('content') or '')}", body_style))

    elements.append(Spacer(1, 0.3 * inch))
    footer_style = ParagraphStyle('Footer', parent=styles['Normal'], fontSize=9, textColor=MUTED, alignment=TA_CENTER)
    footer_text = "Prices are subject to change without notice.<br/><i>This quotation is not an invoice.</i>"
    if snapshot.get('notes'):
        footer_text += f"<br/><br/><b>Notes:</b> {escape(snapshot['notes'])}"
    elements.append(Paragraph(footer_text, footer_style))

    doc.build(elements)
    buffer.seek(0)
    return buffer


def publish_quotation_document(session: Session, quotation_id: int,
                               renderer: Optional[Callable[..., BytesIO]] = None,
                               storage=None) -> Dict[str, Any]:
    """
    Render the stored snapshot, upload it and attach the URL.

    Args:
        session: SQLAlchemy session
        quotation_id: Quotation to publish
        renderer: PDF renderer, defaults to render_quotation_pdf
        storage: Object with upload_bytes(buffer, object_name), defaults to the S3 storage

    Returns:
        Updated snapshot view

    Raises:
        NotFoundError: Unknown quotation
        DownstreamRenderError: Rendering or upload failed; the quotation is kept
    """
    snapshot = get_quotation(session, quotation_id)
    renderer = renderer or render_quotation_pdf

    try:
        if storage is None:
            from quotedesk.services.storage_service import get_storage_service
            storage = get_storage_service()
        buffer = renderer(snapshot, business_info_from_config())
        url = storage.upload_bytes(buffer, f"quotations/{snapshot['quotation_number']}.pdf")
    except Exception as e:
        message = f"{type(e).__name__}: {e}"
        logger.exception(f"[DOCUMENT] Publishing {snapshot['quotation_number']} failed: {message}")
        record_document_error(session, quotation_id, message)
        raise DownstreamRenderError(
            f"Quotation {snapshot['quotation_number']} was saved but its document could not be generated",
            quotation_id=quotation_id
        ) from e

    logger.info(f"[DOCUMENT] Published {snapshot['quotation_number']}: {url}")
    return update_document_url(session, quotation_id, url)
