"""Composer: trigger pickers, selection resolution, attachments, and submit."""

from .attachments import AttachmentDescriptor, extract_attachments, remove_attachment
from .buffer import CompositionBuffer, ImeTracker, KeySignal
from .controller import CompositionController, KeyAction
from .picker import CLOSED, PickerContext, PickerKind, PickerState, detect_trigger, track_query
from .resolvers import SelectionResult
from .submission import SubmissionGate, SubmitOutcome, SubmitRequest

__all__ = [
    "AttachmentDescriptor",
    "CLOSED",
    "CompositionBuffer",
    "CompositionController",
    "ImeTracker",
    "KeyAction",
    "KeySignal",
    "PickerContext",
    "PickerKind",
    "PickerState",
    "SelectionResult",
    "SubmissionGate",
    "SubmitOutcome",
    "SubmitRequest",
    "detect_trigger",
    "extract_attachments",
    "remove_attachment",
    "track_query",
]
