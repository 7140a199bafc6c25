"""
stationery_sync – Python package for issuing stationery to students through
the stationery program's REST backend.

Public API
----------
StationeryAPI        – HTTP client for the backend
StudentDesk          – save drafts, load history, update saved transactions
TransactionDraft     – a student's order being assembled
visible_products     – catalog products a student may be issued
expand_set_components – components of a set line item
merge_for_display    – queued + confirmed transactions, duplicates removed
due_summary          – students who still have kit items to receive
mark_component_taken – update that hands out one set component
load_config          – load settings from a YAML file
"""

from .client import StationeryAPI
from .config import load_config
from .desk import StatusMessage, StudentDesk
from .draft import TransactionDraft
from .due import due_summary
from .eligibility import normalize, visible_products
from .fulfillment import mark_component_taken
from .reconcile import merge_for_display, transaction_signature
from .sets import expand_set_components

__all__ = [
    "due_summary",
    "expand_set_components",
    "load_config",
    "mark_component_taken",
    "merge_for_display",
    "normalize",
    "StationeryAPI",
    "StatusMessage",
    "StudentDesk",
    "transaction_signature",
    "TransactionDraft",
    "visible_products",
]
