"""Payroll domain events and notifiers."""

from hr_payroll.events.emitter import EventEmitter, HandlerRegistration
from hr_payroll.events.notifier import EmitterNotifier, LoggingNotifier, PayrollNotifier
from hr_payroll.events.types import DomainEvent, EventCategory, EventMetadata, PayrollUpdated

__all__ = [
    "DomainEvent",
    "EventMetadata",
    "EventCategory",
    "PayrollUpdated",
    "EventEmitter",
    "HandlerRegistration",
    "PayrollNotifier",
    "EmitterNotifier",
    "LoggingNotifier",
]
