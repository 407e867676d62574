"""Normalization of raw backend records into canonical records.

The classic and VPC backends expose equivalent resources with different wire
shapes. Each resource kind owns a Normalizer holding one variant per backend
flavor; the flavor is passed explicitly by the caller and selects the variant
from a table, so both flavors produce exactly the same canonical field set.

NORMALIZATION RULES:
- Coded sub-objects (status, kind, zone) contribute their code only. An
  empty or missing code leaves the field at its default (None).
- Linked sub-resources (e.g. the server a public IP is attached to) copy
  their identifying fields only when those are non-null and non-empty.
- Every schema field is present in the output; absent relations are None.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .config import BackendFlavor
from .errors import MalformedRecordError
from .models import (
    ClassicPublicIp,
    CommonCode,
    RepositoryDetail,
    VpcPublicIp,
    Zone,
)
from .records import CanonicalRecord, FieldType, FieldValue, RecordSchema

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
NormalizeFn = Callable[[Mapping[str, Any]], CanonicalRecord]


PUBLIC_IP_SCHEMA = RecordSchema(
    kind="public_ip",
    fields={
        "id": FieldType.STRING,
        "instance_no": FieldType.STRING,
        "public_ip_no": FieldType.STRING,
        "public_ip": FieldType.STRING,
        "description": FieldType.STRING,
        "status": FieldType.STRING,
        "kind_type": FieldType.STRING,
        "zone": FieldType.STRING,
        "server_instance_no": FieldType.STRING,
        "server_name": FieldType.STRING,
        "is_associated": FieldType.BOOL,
    },
)

REPOSITORY_SCHEMA = RecordSchema(
    kind="repository",
    fields={
        "id": FieldType.STRING,
        "name": FieldType.STRING,
        "description": FieldType.STRING,
        "creator": FieldType.STRING,
        "git_https": FieldType.STRING,
        "git_ssh": FieldType.STRING,
        "filesafer": FieldType.BOOL,
    },
)


def flatten_common_code(code: CommonCode | None) -> str | None:
    """Extract the code of an enumerated sub-object, None when empty."""
    if code is None or not code.code:
        return None
    return code.code


def flatten_zone(zone: Zone | None) -> str | None:
    """Extract the zone code, None when empty."""
    if zone is None or not zone.zone_code:
        return None
    return zone.zone_code


def set_string_if_not_empty(draft: dict[str, FieldValue], key: str, value: str | None) -> None:
    """Assign ``value`` only if it is a non-empty string."""
    if value:
        draft[key] = value


def _parse(model: type[ModelT], raw: Mapping[str, Any], kind: str) -> ModelT:
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise MalformedRecordError(
            f"Malformed {kind} record from backend: {e.error_count()} validation error(s): {e}"
        ) from e


# =============================================================================
# Public IP variants
# =============================================================================


def _normalize_classic_public_ip(raw: Mapping[str, Any]) -> CanonicalRecord:
    r = _parse(ClassicPublicIp, raw, PUBLIC_IP_SCHEMA.kind)

    draft = PUBLIC_IP_SCHEMA.empty()
    draft.update(
        {
            "id": r.public_ip_instance_no,
            "instance_no": r.public_ip_instance_no,
            "public_ip_no": r.public_ip_instance_no,
            "public_ip": r.public_ip,
            "description": r.public_ip_description,
        }
    )

    if status := flatten_common_code(r.public_ip_instance_status):
        draft["status"] = status
    if kind_type := flatten_common_code(r.public_ip_kind_type):
        draft["kind_type"] = kind_type
    if zone := flatten_zone(r.zone):
        draft["zone"] = zone

    if server := r.server_instance_associated_with_public_ip:
        set_string_if_not_empty(draft, "server_instance_no", server.server_instance_no)
        set_string_if_not_empty(draft, "server_name", server.server_name)

    draft["is_associated"] = draft["server_instance_no"] is not None
    return CanonicalRecord(PUBLIC_IP_SCHEMA, draft)


def _normalize_vpc_public_ip(raw: Mapping[str, Any]) -> CanonicalRecord:
    r = _parse(VpcPublicIp, raw, PUBLIC_IP_SCHEMA.kind)

    draft = PUBLIC_IP_SCHEMA.empty()
    draft.update(
        {
            "id": r.public_ip_instance_no,
            "public_ip_no": r.public_ip_instance_no,
            "public_ip": r.public_ip,
            "description": r.public_ip_description,
        }
    )

    set_string_if_not_empty(draft, "server_instance_no", r.server_instance_no)
    set_string_if_not_empty(draft, "server_name", r.server_name)

    if status := flatten_common_code(r.public_ip_instance_status):
        draft["status"] = status

    draft["is_associated"] = draft["server_instance_no"] is not None
    return CanonicalRecord(PUBLIC_IP_SCHEMA, draft)


# =============================================================================
# Repository variant (not network scoped: one shape for both flavors)
# =============================================================================


def _normalize_repository(raw: Mapping[str, Any]) -> CanonicalRecord:
    r = _parse(RepositoryDetail, raw, REPOSITORY_SCHEMA.kind)

    draft = REPOSITORY_SCHEMA.empty()
    draft.update(
        {
            "id": str(r.id),
            "name": r.name,
            "description": r.description,
            "creator": r.created.user,
            "git_https": r.git.https,
            "git_ssh": r.git.ssh,
            "filesafer": r.linked.file_safer,
        }
    )
    return CanonicalRecord(REPOSITORY_SCHEMA, draft)


@dataclass(frozen=True)
class Normalizer:
    """Per-kind normalizer with one variant per backend flavor."""

    schema: RecordSchema
    variants: Mapping[BackendFlavor, NormalizeFn]

    def normalize(self, raw: Mapping[str, Any], flavor: BackendFlavor) -> CanonicalRecord:
        """Convert one raw record of ``flavor`` into a canonical record.

        Raises:
            MalformedRecordError: If the record lacks a guaranteed field.
            ValueError: If this kind has no variant for ``flavor``.
        """
        variant = self.variants.get(flavor)
        if variant is None:
            raise ValueError(
                f"No {self.schema.kind} normalizer for backend flavor '{flavor.value}'"
            )
        return variant(raw)

    def normalize_all(
        self, raws: Iterable[Mapping[str, Any]], flavor: BackendFlavor
    ) -> list[CanonicalRecord]:
        records = [self.normalize(raw, flavor) for raw in raws]
        logger.debug(
            "Normalized records",
            extra={"kind": self.schema.kind, "flavor": flavor.value, "count": len(records)},
        )
        return records


PUBLIC_IP_NORMALIZER = Normalizer(
    schema=PUBLIC_IP_SCHEMA,
    variants={
        BackendFlavor.CLASSIC: _normalize_classic_public_ip,
        BackendFlavor.VPC: _normalize_vpc_public_ip,
    },
)

REPOSITORY_NORMALIZER = Normalizer(
    schema=REPOSITORY_SCHEMA,
    variants={
        BackendFlavor.CLASSIC: _normalize_repository,
        BackendFlavor.VPC: _normalize_repository,
    },
)
