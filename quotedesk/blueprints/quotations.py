"""Quotations blueprint - JSON API."""
from flask import Blueprint, current_app, g, jsonify, request, send_file
from quotedesk.blueprints.metrics import (
    quotation_deliveries_total, quotation_documents_total, quotations_created_total
)
from quotedesk.database import get_session
from quotedesk.exceptions import DeliveryError, DownstreamRenderError, ValidationError
from quotedesk.middleware import require_admin, require_login
from quotedesk.services.document_service import (
    business_info_from_config, publish_quotation_document, render_quotation_pdf
)
from quotedesk.services.messaging_service import send_quotation_whatsapp
from quotedesk.services.quotation_service import (
    assemble_quotation, get_quotation, list_quotations, parse_quotation_request,
    update_quotation_status
)
from quotedesk.services.stats_service import (
    count_quotations, get_month_datetime_range, get_quotation_stats, get_today_datetime_range
)

quotations_bp = Blueprint('quotations', __name__, url_prefix='/api/quotations')


def _publish(db_session, quotation_id):
    """Publish the PDF; returns (snapshot, error message or None)."""
    try:
        snapshot = publish_quotation_document(db_session, quotation_id)
        quotation_documents_total.labels(outcome='success').inc()
        return snapshot, None
    except DownstreamRenderError as e:
        quotation_documents_total.labels(outcome='failed').inc()
        return get_quotation(db_session, quotation_id), e.message


@quotations_bp.route('', methods=['POST'])
@require_login
def create_quotation():
    """
    Create a quotation for the current user's branch.

    The quotation is stored first. When RENDER_DOCUMENT_ON_CREATE is on
    the PDF is published right after; a failure there is returned in
    'document_error' and the quotation stays a draft without pdf_url.
    """
    db_session = get_session()

    quotation_request = parse_quotation_request(request.get_json(silent=True))
    snapshot = assemble_quotation(db_session, quotation_request, g.user)
    quotations_created_total.labels(branch_id=str(snapshot['branch_id'])).inc()

    if current_app.config.get('RENDER_DOCUMENT_ON_CREATE', True):
        snapshot, _ = _publish(db_session, snapshot['id'])

    return jsonify({'status': 'success', 'data': snapshot}), 201


@quotations_bp.route('', methods=['GET'])
@require_login
def list_all():
    """List quotations visible to the current user."""
    db_session = get_session()

    branch_id = request.args.get('branch_id', type=int)
    status = request.args.get('status', '').strip().lower() or None
    quotations = list_quotations(db_session, g.user, branch_id=branch_id, status=status)

    return jsonify({'status': 'success', 'results': len(quotations), 'data': quotations})


@quotations_bp.route('/stats', methods=['GET'])
@require_admin
def stats():
    """Monthly and per-branch counts and amounts (admin only)."""
    db_session = get_session()
    branch_id = request.args.get('branch_id', type=int)
    return jsonify({'status': 'success', 'data': get_quotation_stats(db_session, g.user, branch_id=branch_id)})


@quotations_bp.route('/count/today', methods=['GET'])
@require_login
def count_today():
    db_session = get_session()
    start_dt, end_dt = get_today_datetime_range()
    return jsonify({'status': 'success', 'data': {'count': count_quotations(db_session, g.user, start_dt, end_dt)}})


@quotations_bp.route('/count/month', methods=['GET'])
@require_login
def count_month():
    db_session = get_session()
    start_dt, end_dt = get_month_datetime_range()
    return jsonify({'status': 'success', 'data': {'count': count_quotations(db_session, g.user, start_dt, end_dt)}})


@quotations_bp.route('/<int:quotation_id>', methods=['GET'])
@require_login
def get_one(quotation_id):
    db_session = get_session()
    return jsonify({'status': 'success', 'data': get_quotation(db_session, quotation_id, g.user)})


@quotations_bp.route('/<int:quotation_id>/pdf', methods=['GET'])
@require_login
def download_pdf(quotation_id):
    """Render the stored snapshot on the fly."""
    db_session = get_session()
    snapshot = get_quotation(db_session, quotation_id, g.user)
    pdf_buffer = render_quotation_pdf(snapshot, business_info_from_config())

    return send_file(
        pdf_buffer,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f"{snapshot['quotation_number']}.pdf"
    )


@quotations_bp.route('/<int:quotation_id>/document', methods=['POST'])
@require_login
def publish_document(quotation_id):
    """Generate (or regenerate) and publish the quotation PDF."""
    db_session = get_session()
    get_quotation(db_session, quotation_id, g.user)

    snapshot, error = _publish(db_session, quotation_id)
    if error:
        return jsonify({'status': 'error', 'message': error, 'data': snapshot}), 502
    return jsonify({'status': 'success', 'data': snapshot})


@quotations_bp.route('/<int:quotation_id>/whatsapp', methods=['POST'])
@require_login
def send_whatsapp(quotation_id):
    """Send the published PDF to the customer over WhatsApp."""
    db_session = get_session()
    try:
        snapshot = send_quotation_whatsapp(db_session, quotation_id, user=g.user)
    except DeliveryError:
        quotation_deliveries_total.labels(outcome='failed').inc()
        raise

    quotation_deliveries_total.labels(outcome='success').inc()
    return jsonify({'status': 'success', 'data': snapshot})


@quotations_bp.route('/<int:quotation_id>/status', methods=['PATCH'])
@require_login
def change_status(quotation_id):
    db_session = get_session()
    data = request.get_json(silent=True) or {}
    status = (data.get('status') or '').strip().lower()
    if not status:
        raise ValidationError('Status is required', {'status': 'This field is required'})

    snapshot = update_quotation_status(db_session, quotation_id, status, g.user)
    return jsonify({'status': 'success', 'data': snapshot})
