"""
TemplateApplicator -- seed a case or vehicle from a template.

Responsibility:
    Store case/vehicle templates (named lists of materials with standard
    quantities) and apply them to a location, either replacing the current
    levels or adding to them.

Architecture position:
    Kernel > Services.  Templates live in the company partition
    (``COMPANY#<company_id>``, ``TEMPLATE#<template_id>``).  Every level write
    goes through the TransactionRecorder.

Invariants enforced:
    - Replace: the level is set to the item's standard quantity
      (``inventory_check`` row).  Applying twice leaves it unchanged.
    - Additive: the level grows by the item's standard quantity (``stock``
      row).  Applying twice doubles it.
    - Both modes write the item's standard quantity and bin location onto
      the level.
    - Template items carry a positive standard quantity.
    - A repository only saves templates owned by its own company, so every
      saved template is readable through ``get_template``.

Failure modes:
    - TemplateNotFoundError (a NotFoundError) for an unknown template id.
    - InvalidQuantityError from ``save_template`` for non-positive items.
    - TemplateOwnerMismatchError from ``save_template`` for another
      company's template.
    - Any recorder error for an item aborts the application; items before it
      stay applied.
"""

from dataclasses import dataclass

from inventory_kernel.domain.records import Template
from inventory_kernel.domain.values import ZERO, TemplateKind, TransactionType
from inventory_kernel.exceptions import (
    InvalidQuantityError,
    TemplateNotFoundError,
    TemplateOwnerMismatchError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.transaction_recorder import TransactionRecorder
from inventory_kernel.store.base import LedgerStore
from inventory_kernel.store.keys import TEMPLATE_PREFIX, company_partition, template_sort_key

logger = get_logger("services.template_applicator")


@dataclass(frozen=True)
class ApplyResult:
    items_applied: int


class TemplateRepository:
    """Case and vehicle templates of one company."""

    def __init__(self, store: LedgerStore, company_id: str):
        self._store = store
        self.company_id = company_id

    def save_template(self, template: Template) -> Template:
        """
        Raises:
            TemplateOwnerMismatchError: ``template.owner_id`` is not this
                repository's company, so the template could never be read back.
            InvalidQuantityError: an item has no positive standard quantity.
        """
        if template.owner_id != self.company_id:
            raise TemplateOwnerMismatchError(template.template_id, template.owner_id, self.company_id)
        for item in template.items:
            if item.standard_quantity <= ZERO:
                raise InvalidQuantityError(
                    item.standard_quantity,
                    f"template item {item.material_id} needs a positive standard quantity",
                )
        self._store.put(
            company_partition(self.company_id),
            template_sort_key(template.template_id),
            template.to_record(),
        )
        logger.info(
            "template_saved",
            extra={
                "template_id": template.template_id,
                "template_kind": template.kind.value,
                "item_count": len(template.items),
            },
        )
        return template

    def get_template(self, template_id: str) -> Template:
        """
        Raises:
            TemplateNotFoundError: no template with that id for this company.
        """
        record = self._store.get(
            company_partition(self.company_id), template_sort_key(template_id)
        )
        if record is None:
            raise TemplateNotFoundError(template_id)
        return Template.from_record(record)

    def list_templates(self, kind: TemplateKind | None = None) -> list[Template]:
        templates = [
            Template.from_record(record)
            for record in self._store.query_by_prefix(
                company_partition(self.company_id), TEMPLATE_PREFIX
            )
        ]
        if kind is not None:
            templates = [t for t in templates if t.kind == kind]
        return templates


class TemplateApplicator:
    """Applies templates through the recorder."""

    def __init__(self, templates: TemplateRepository, recorder: TransactionRecorder):
        self._templates = templates
        self._recorder = recorder

    def apply(
        self,
        location_id: str,
        template_id: str,
        actor_id: str,
        replace_existing: bool,
    ) -> ApplyResult:
        template = self._templates.get_template(template_id)
        transaction_type = (
            TransactionType.INVENTORY_CHECK if replace_existing else TransactionType.STOCK
        )

        applied = 0
        for item in template.items:
            self._recorder.record(
                location_id,
                item.material_id,
                transaction_type,
                item.standard_quantity,
                actor_id,
                notes=f"template {template_id}",
                standard_quantity=item.standard_quantity,
                location=item.location,
                min_quantity=item.min_quantity,
            )
            applied += 1

        logger.info(
            "template_applied",
            extra={
                "location_id": location_id,
                "template_id": template_id,
                "replace_existing": replace_existing,
                "items_applied": applied,
            },
        )
        return ApplyResult(items_applied=applied)
