# gatepass/services/vehicle_selector.py
"""
Vehicle selection for the create form.

A selection is one of three variants and each variant has exactly one
handler (functools.singledispatch):
  SingleSelection        one known vehicle id
  MultipleSelection      several known vehicle ids (visitor inspections)
  SearchCreateSelection  a registration number, looked up and created on the fly

preview_selection() resolves without registering, so a form can be checked
before search-create writes to the directory.
"""

import threading
from dataclasses import dataclass
from functools import singledispatch
from typing import Dict, Optional, Tuple, Union

from gatepass.schemas.gate_pass import PassIntent
from gatepass.services.pass_lifecycle import new_id


@dataclass(frozen=True)
class SingleSelection:
    vehicle_id: str


@dataclass(frozen=True)
class MultipleSelection:
    vehicle_ids: Tuple[str, ...]


@dataclass(frozen=True)
class SearchCreateSelection:
    registration_number: str
    make: Optional[str] = None
    model: Optional[str] = None


SelectorMode = Union[SingleSelection, MultipleSelection, SearchCreateSelection]


def normalize_registration(value: str) -> str:
    return "".join((value or "").split()).upper()


class VehicleDirectory:
    """Registration lookup used by search-create. Implemented in memory and over SQL."""

    def lookup(self, registration_number: str) -> Optional[str]:
        raise NotImplementedError

    def create(self, registration_number: str, make: Optional[str] = None,
               model: Optional[str] = None) -> str:
        raise NotImplementedError

    def get_or_create(self, registration_number: str, make: Optional[str] = None,
                      model: Optional[str] = None) -> str:
        found = self.lookup(registration_number)
        if found is not None:
            return found
        return self.create(registration_number, make, model)


class InMemoryVehicleDirectory(VehicleDirectory):
    def __init__(self):
        self._by_registration: Dict[str, str] = {}
        self._lock = threading.Lock()

    def lookup(self, registration_number):
        return self._by_registration.get(normalize_registration(registration_number))

    def create(self, registration_number, make=None, model=None):
        key = normalize_registration(registration_number)
        with self._lock:
            return self._by_registration.setdefault(key, new_id())


@singledispatch
def resolve_selection(selection, directory: Optional[VehicleDirectory] = None) -> Tuple[str, ...]:
    raise TypeError(f"unsupported vehicle selection: {type(selection).__name__}")


@resolve_selection.register
def _(selection: SingleSelection, directory=None):
    return (selection.vehicle_id,) if selection.vehicle_id else ()


@resolve_selection.register
def _(selection: MultipleSelection, directory=None):
    return tuple(ref for ref in selection.vehicle_ids if ref)


@resolve_selection.register
def _(selection: SearchCreateSelection, directory=None):
    registration = normalize_registration(selection.registration_number)
    if not registration:
        return ()
    if directory is None:
        raise ValueError("search-create selection needs a vehicle directory")
    return (directory.get_or_create(registration, selection.make, selection.model),)


def preview_selection(selection, directory: Optional[VehicleDirectory] = None) -> Tuple[str, ...]:
    """
    Resolve a selection without registering anything. An unknown
    search-create registration stands in for its own vehicle id.
    """
    if not isinstance(selection, SearchCreateSelection):
        return resolve_selection(selection, directory)
    registration = normalize_registration(selection.registration_number)
    if not registration:
        return ()
    known = directory.lookup(registration) if directory is not None else None
    return (known or registration,)


def selection_fields(intent, refs: Tuple[str, ...]) -> dict:
    """Form fields that carry the selected vehicle references for an intent."""
    if PassIntent(intent) == PassIntent.VISITOR:
        return {"vehicles_to_view": list(refs)}
    return {"vehicle_id": refs[0] if refs else None}


def apply_selection(intent, fields: dict, selection: Optional[SelectorMode],
                    directory: Optional[VehicleDirectory] = None) -> dict:
    """Return a copy of the form fields with the selected vehicle(s) filled in."""
    if selection is None:
        return dict(fields)
    merged = dict(fields)
    merged.update(selection_fields(intent, resolve_selection(selection, directory)))
    return merged
