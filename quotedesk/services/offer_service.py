"""Offer and attachment matching against a set of selected models."""
from typing import Any, Dict, Iterable, List


def _applicable_ids(entity: Dict[str, Any], list_field: str) -> set:
    return {item['id'] if isinstance(item, dict) else item for item in entity.get(list_field) or []}


def match_by_models(entities: Iterable[Dict[str, Any]], model_ids: Iterable[int],
                    all_flag: str = 'apply_to_all_models',
                    list_field: str = 'applicable_models') -> List[Dict[str, Any]]:
    """
    Entities that apply to any of model_ids.

    An entity flagged as applying to all models always matches, even when
    model_ids is empty. Otherwise its applicable list must intersect
    model_ids. Repeats (same id) are dropped, and the result is ordered by
    (created_at, id) so the same input always gives the same output.
    """
    wanted = set(model_ids)
    matched = {}

    for entity in entities:
        if entity['id'] in matched:
            continue
        if entity.get(all_flag) or wanted & _applicable_ids(entity, list_field):
            matched[entity['id']] = entity

    return sorted(matched.values(), key=lambda e: (e.get('created_at') or '', e['id']))


def match_offers(offers: Iterable[Dict[str, Any]], model_ids: Iterable[int]) -> List[Dict[str, Any]]:
    """Active offers for the selection."""
    return match_by_models([o for o in offers if o.get('is_active', True)], model_ids)


def match_attachments(attachments: Iterable[Dict[str, Any]], model_ids: Iterable[int]) -> List[Dict[str, Any]]:
    return match_by_models(attachments, model_ids, all_flag='is_for_all_models')


def offers_for_model(offers: Iterable[Dict[str, Any]], model_id: int) -> List[Dict[str, Any]]:
    """Offers (already matched) that apply to one model."""
    return [o for o in offers if o.get('apply_to_all_models') or model_id in _applicable_ids(o, 'applicable_models')]
