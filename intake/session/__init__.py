"""
Client-side intake session engine.

Usage:
    from intake.session import IntakeSession, LocalRecordStore, GatewayGenerator
"""

from intake.session.controller import IntakeSession, SessionSettings
from intake.session.scheduler import ManualScheduler, ThreadingScheduler
from intake.session.store import GatewayGenerator, LocalRecordStore, RecordStore, TextGenerator

__all__ = [
    "IntakeSession",
    "SessionSettings",
    "ManualScheduler",
    "ThreadingScheduler",
    "RecordStore",
    "TextGenerator",
    "LocalRecordStore",
    "GatewayGenerator",
]
