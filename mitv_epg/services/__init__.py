"""
Services package for the EPG grabber

Listing normalization core (builder, resolver, validator, assembler) and the
collaborators around it.
"""
from mitv_epg.services.boundary_resolver import DayWindow, resolve_window
from mitv_epg.services.timeline_assembler import TimelineAssembler, assemble_timeline
from mitv_epg.services.timeline_builder import build_day
from mitv_epg.services.timeline_validator import check_timeline, validate_timeline

__all__ = [
    'DayWindow',
    'TimelineAssembler',
    'assemble_timeline',
    'build_day',
    'check_timeline',
    'resolve_window',
    'validate_timeline',
]
