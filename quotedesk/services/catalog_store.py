"""
Catalog store - read access to the catalog for the quotation engine.

Every reader takes a session and returns plain dict records, detached
from the ORM, so they can be produced on worker threads and embedded
into quotation snapshots as-is.

Independent reads are fanned out with CatalogStore.gather(), each read
running on its own short-lived session.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from quotedesk.database import new_session
from quotedesk.models import (
    AppUser, Attachment, Branch, FinanceDocument, Header, ModelStatus,
    Offer, TermsCondition, VehicleModel, attachment_model, offer_model
)
from quotedesk.services.series_service import series_of

logger = logging.getLogger(__name__)


def _iso(value):
    return value.isoformat() if value is not None else None


def _money(value) -> Optional[Decimal]:
    """Numeric column value as Decimal. Snapshots convert it with money_value()."""
    if value is None:
        return None
    return value if isinstance(value, Decimal) else Decimal(str(value))


# ---------------------------------------------------------------------------
# Record builders
# ---------------------------------------------------------------------------

def model_record(model: VehicleModel) -> Dict[str, Any]:
    return {
        'id': model.id,
        'model_name': model.model_name,
        'type': model.type,
        'status': model.status,
        'created_at': _iso(model.created_at),
        # Stored order is kept: duplicate (header, branch) entries resolve to the first
        'prices': [
            {'value': _money(p.value), 'header_id': p.header_id, 'branch_id': p.branch_id}
            for p in model.prices
        ],
    }


def header_record(header: Header) -> Dict[str, Any]:
    return {
        'id': header.id,
        'category_key': header.category_key,
        'type': header.type,
        'header_key': header.header_key,
        'priority': header.priority,
        'metadata': dict(header.meta or {}),
    }


def branch_record(branch: Branch) -> Dict[str, Any]:
    return {
        'id': branch.id,
        'name': branch.name,
        'address': branch.address,
        'city': branch.city,
        'state': branch.state,
        'pincode': branch.pincode,
        'phone': branch.phone,
        'email': branch.email,
        'gst_number': branch.gst_number,
        'is_active': branch.is_active,
    }


def offer_record(offer: Offer) -> Dict[str, Any]:
    return {
        'id': offer.id,
        'title': offer.title,
        'description': offer.description,
        'image': offer.image,
        'url': offer.url,
        'is_active': offer.is_active,
        'apply_to_all_models': offer.apply_to_all_models,
        'applicable_models': [
            {'id': m.id, 'model_name': m.model_name} for m in offer.applicable_models
        ],
        'created_at': _iso(offer.created_at),
    }


def attachment_record(attachment: Attachment) -> Dict[str, Any]:
    creator = attachment.creator
    return {
        'id': attachment.id,
        'title': attachment.title,
        'description': attachment.description,
        'is_for_all_models': attachment.is_for_all_models,
        'applicable_models': [
            {'id': m.id, 'model_name': m.model_name} for m in attachment.applicable_models
        ],
        'attachments': [
            {'type': item.type, 'url': item.url, 'content': item.content, 'thumbnail': item.thumbnail}
            for item in attachment.items
        ],
        'created_by': {
            'id': creator.id,
            'name': creator.full_name,
            'email': creator.email,
        } if creator else None,
        'created_at': _iso(attachment.created_at),
    }


def finance_document_record(document: FinanceDocument) -> Dict[str, Any]:
    return {
        'id': document.id,
        'name': document.name,
        'is_required': document.is_required,
        'description': document.description,
        'created_at': _iso(document.created_at),
    }


def terms_record(terms: TermsCondition) -> Dict[str, Any]:
    return {
        'id': terms.id,
        'title': terms.title,
        'content': terms.content,
        'order': terms.order,
    }


# ---------------------------------------------------------------------------
# Readers (session-scoped)
# ---------------------------------------------------------------------------

def find_models_by_ids(session: Session, model_ids: Iterable[int]) -> List[Dict[str, Any]]:
    """Models for the given ids, in the order of model_ids. Unknown ids are skipped."""
    model_ids = list(model_ids)
    if not model_ids:
        return []
    models = session.query(VehicleModel).options(
        selectinload(VehicleModel.prices)
    ).filter(VehicleModel.id.in_(model_ids)).all()
    by_id = {m.id: model_record(m) for m in models}
    return [by_id[mid] for mid in model_ids if mid in by_id]


def find_all_headers(session: Session) -> List[Dict[str, Any]]:
    """Every header, ordered by (priority, id)."""
    headers = session.query(Header).order_by(Header.priority, Header.id).all()
    return [header_record(h) for h in headers]


def find_branch_by_id(session: Session, branch_id: int) -> Optional[Dict[str, Any]]:
    branch = session.query(Branch).filter(Branch.id == branch_id).first()
    return branch_record(branch) if branch else None


def find_offers_matching(session: Session, model_ids: Iterable[int]) -> List[Dict[str, Any]]:
    """
    Active offers that apply to every model or to any of model_ids.

    The join yields one row per matching model, so the same offer can come
    back more than once; callers dedupe through match_by_models().
    """
    model_ids = list(model_ids)
    query = session.query(Offer).outerjoin(
        offer_model, offer_model.c.offer_id == Offer.id
    ).options(selectinload(Offer.applicable_models)).filter(Offer.is_active.is_(True))

    if model_ids:
        query = query.filter(or_(
            Offer.apply_to_all_models.is_(True),
            offer_model.c.model_id.in_(model_ids)
        ))
    else:
        query = query.filter(Offer.apply_to_all_models.is_(True))

    return [offer_record(o) for o in query.order_by(Offer.id).all()]


def find_attachments_matching(session: Session, model_ids: Iterable[int]) -> List[Dict[str, Any]]:
    """Attachments for every model or for any of model_ids (may contain repeats)."""
    model_ids = list(model_ids)
    query = session.query(Attachment).outerjoin(
        attachment_model, attachment_model.c.attachment_id == Attachment.id
    ).options(
        selectinload(Attachment.items),
        selectinload(Attachment.applicable_models),
        selectinload(Attachment.creator)
    )

    if model_ids:
        query = query.filter(or_(
            Attachment.is_for_all_models.is_(True),
            attachment_model.c.model_id.in_(model_ids)
        ))
    else:
        query = query.filter(Attachment.is_for_all_models.is_(True))

    return [attachment_record(a) for a in query.order_by(Attachment.id).all()]


def find_models_by_series(session: Session, series: str,
                          include_ids: Iterable[int] = ()) -> List[Dict[str, Any]]:
    """
    Every model whose series token equals `series`, ordered by id.

    Active models only, plus any model listed in include_ids (the selected
    ones) even when inactive. The LIKE prefix only narrows the scan; the
    exact token comparison keeps 'X1' and 'X10' apart.
    """
    include_ids = set(include_ids)
    pattern = series.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_') + '%'
    models = session.query(VehicleModel).options(
        selectinload(VehicleModel.prices)
    ).filter(
        VehicleModel.model_name.like(pattern, escape='\\')
    ).order_by(VehicleModel.id).all()

    return [
        model_record(m) for m in models
        if series_of(m.model_name) == series
        and (m.status == ModelStatus.ACTIVE.value or m.id in include_ids)
    ]


def find_finance_documents(session: Session) -> List[Dict[str, Any]]:
    documents = session.query(FinanceDocument).order_by(FinanceDocument.id).all()
    return [finance_document_record(d) for d in documents]


def find_active_terms(session: Session) -> List[Dict[str, Any]]:
    terms = session.query(TermsCondition).filter(
        TermsCondition.is_active.is_(True)
    ).order_by(TermsCondition.order, TermsCondition.id).all()
    return [terms_record(t) for t in terms]


def find_user_by_id(session: Session, user_id: int) -> Optional[AppUser]:
    return session.query(AppUser).filter(AppUser.id == user_id, AppUser.active.is_(True)).first()


# ---------------------------------------------------------------------------
# Fan-out
# ---------------------------------------------------------------------------

class CatalogStore:
    """
    Runs independent catalog reads concurrently.

    Usage:
        store = CatalogStore(max_workers=4)
        data = store.gather(
            headers=(find_all_headers,),
            branch=(find_branch_by_id, branch_id),
        )
        data['headers'], data['branch']
    """

    def __init__(self, max_workers: int = 4, session_provider: Callable[[], Session] = new_session):
        self.max_workers = max_workers
        self.session_provider = session_provider

    def _read(self, reader: Callable, *args) -> Any:
        session = self.session_provider()
        try:
            return reader(session, *args)
        finally:
            session.close()

    def gather(self, **reads) -> Dict[str, Any]:
        """Execute reads given as name=(reader, *args); returns name -> result."""
        if self.max_workers <= 1 or len(reads) <= 1:
            return {name: self._read(*args) for name, args in reads.items()}

        workers = min(self.max_workers, len(reads))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix='catalog') as pool:
            futures = {name: pool.submit(self._read, *args) for name, args in reads.items()}
            # result() re-raises worker exceptions in the caller
            return {name: future.result() for name, future in futures.items()}

    def models_by_series(self, series_list: Iterable[str], include_ids: Iterable[int] = ()) -> Dict[str, List[Dict[str, Any]]]:
        """One catalog query per distinct series."""
        include_ids = tuple(include_ids)
        distinct = list(dict.fromkeys(series_list))
        reads = {
            f'series:{s}': (find_models_by_series, s, include_ids) for s in distinct
        }
        results = self.gather(**reads)
        logger.debug(f"[CATALOG] Loaded {len(distinct)} series: {distinct}")
        return {s: results[f'series:{s}'] for s in distinct}
