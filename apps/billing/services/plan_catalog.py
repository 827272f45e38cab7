"""Plan catalog service."""

import logging
from typing import List

from django.db import transaction

from apps.billing.exceptions import WebhookPayloadError
from apps.billing.models import Plan

logger = logging.getLogger(__name__)

SYNCED_FIELDS = [
    'product_id',
    'product_name',
    'name',
    'description',
    'price',
    'is_usage_based',
    'interval',
    'interval_count',
    'trial_interval',
    'trial_interval_count',
    'sort',
    'is_provisional',
    'updated_at',
]


def _as_int(value, field):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise WebhookPayloadError(f"Invalid {field}: {value!r}")


def get_or_create_provisional_plan(attributes: dict) -> Plan:
    """
    Return the plan for a webhook's ``variant_id``, creating a placeholder if needed.

    Webhooks can arrive before the catalog has been synced. The placeholder
    has price "0" and ``is_provisional=True`` until the next sync. The insert
    ignores conflicts and the row is re-read, so two concurrent deliveries
    for the same variant end up with one plan.

    Raises:
        WebhookPayloadError: If ``variant_id`` is missing or not an integer.
    """
    variant_id = _as_int(attributes.get('variant_id'), 'variant_id')

    plan = Plan.objects.filter(variant_id=variant_id).first()
    if plan:
        return plan

    Plan.objects.bulk_create(
        [
            Plan(
                variant_id=variant_id,
                product_id=_as_int(attributes.get('product_id') or 0, 'product_id'),
                product_name=attributes.get('product_name') or '',
                name=attributes.get('variant_name') or attributes.get('product_name') or f"Variant {variant_id}",
                price='0',
                is_provisional=True,
            )
        ],
        ignore_conflicts=True,
    )
    logger.info("Auto-created provisional plan for variant %s", variant_id)

    return Plan.objects.get(variant_id=variant_id)


def _plan_from_variant(variant, product) -> Plan:
    attrs = variant.get('attributes') or {}
    product_attrs = product.get('attributes') or {}
    return Plan(
        product_id=int(product['id']),
        product_name=product_attrs.get('name') or '',
        variant_id=int(variant['id']),
        name=attrs.get('name') or product_attrs.get('name') or '',
        description=attrs.get('description') or product_attrs.get('description'),
        price=str(attrs.get('price', 0)),
        is_usage_based=bool(attrs.get('is_usage_based', False)),
        interval=attrs.get('interval'),
        interval_count=attrs.get('interval_count'),
        trial_interval=attrs.get('trial_interval'),
        trial_interval_count=attrs.get('trial_interval_count'),
        sort=attrs.get('sort'),
        is_provisional=False,
    )


def sync_plans(*, products: list, variants: list, dry_run: bool = False) -> List[Plan]:
    """
    Reconcile the local plan table with an exported provider catalog.

    ``products`` and ``variants`` are lists of JSON:API resources
    (``{'id': ..., 'attributes': {...}}``). Draft variants and variants
    whose product is not in ``products`` are skipped. Plans are upserted by
    ``variant_id``, which also promotes provisional plans to real ones.

    Args:
        products: Product resources.
        variants: Variant resources; ``attributes.product_id`` links them.
        dry_run: Build the plans without writing them.

    Returns:
        The synced plans, in variant order. Unsaved when ``dry_run``.
    """
    product_map = {str(product['id']): product for product in products}

    plans = []
    for variant in variants:
        attrs = variant.get('attributes') or {}
        product = product_map.get(str(attrs.get('product_id')))

        if product is None:
            logger.warning("Product not found for variant %s", variant.get('id'))
            continue
        if attrs.get('status') == 'draft':
            logger.info("Skipping draft variant %s", attrs.get('name'))
            continue

        plans.append(_plan_from_variant(variant, product))

    if dry_run or not plans:
        return plans

    with transaction.atomic():
        Plan.objects.bulk_create(
            plans,
            update_conflicts=True,
            unique_fields=['variant_id'],
            update_fields=SYNCED_FIELDS,
        )

    logger.info("Synced %s plans", len(plans))

    synced = Plan.objects.in_bulk([plan.variant_id for plan in plans], field_name='variant_id')
    return [synced[plan.variant_id] for plan in plans]
