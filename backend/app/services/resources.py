from __future__ import annotations

from dataclasses import dataclass

from app.core.config import get_settings
from app.models.appointment import FixedResource


@dataclass(frozen=True)
class PractitionerRef:
    practitioner_id: str


ResourceRef = PractitionerRef | FixedResource


def resource_ref(column: str) -> ResourceRef:
    try:
        return FixedResource(column)
    except ValueError:
        return PractitionerRef(column)


def column_id(ref: ResourceRef) -> str:
    if isinstance(ref, FixedResource):
        return ref.value
    return ref.practitioner_id


def practitioner_id_of(ref: ResourceRef) -> str | None:
    if isinstance(ref, PractitionerRef):
        return ref.practitioner_id
    return None


def fixed_resource_title(resource: FixedResource) -> str:
    settings = get_settings()
    titles = {
        FixedResource.ekg: settings.ekg_column_title,
        FixedResource.labor: settings.labor_column_title,
    }
    return titles[resource]


def record_resource_ref(practitioner_id: str | None, resource: str | None) -> ResourceRef:
    """Column of a stored appointment; unassigned bookings fall into the EKG column."""
    if practitioner_id:
        return PractitionerRef(practitioner_id)
    if resource:
        return resource_ref(resource)
    return FixedResource.ekg
