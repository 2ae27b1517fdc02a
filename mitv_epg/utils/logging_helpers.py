"""
Structured logging helpers for consistent log formatting.

Provides utilities for structured, clean logging without excessive decorative separators.
"""
import logging
from datetime import date, datetime, timezone


def log_grab_start(logger: logging.Logger) -> None:
    """Log grab run start."""
    logger.info(f"Listing grab started at {datetime.now(timezone.utc).isoformat()}")


def log_grab_end(logger: logging.Logger) -> None:
    """Log grab run end."""
    logger.info(f"Listing grab completed at {datetime.now(timezone.utc).isoformat()}")


def log_window(logger: logging.Logger, days: list[date], lookahead: date, cutoff_hour: int) -> None:
    """
    Log the listing days a run covers.

    Args:
        logger: Logger instance
        days: Requested listing days
        lookahead: Extra day fetched only to close the last day
        cutoff_hour: Broadcast day cutoff hour
    """
    logger.info(
        f"Listing window: {days[0].isoformat()} -> {days[-1].isoformat()} "
        f"({len(days)} days, lookahead {lookahead.isoformat()}, cutoff {cutoff_hour:02d}:00)"
    )


def log_channel_processing(logger: logging.Logger, idx: int, total: int, channel_id: str) -> None:
    """
    Log channel processing header.

    Args:
        logger: Logger instance
        idx: Current channel index (1-based)
        total: Total number of channels
        channel_id: Channel being processed
    """
    logger.info(f"[Channel {idx}/{total}] Processing {channel_id}")


def log_channel_summary(
    logger: logging.Logger,
    channel_id: str,
    programs_count: int,
    partial: bool,
    repaired: bool
) -> None:
    """
    Log a finalized channel timeline.

    Args:
        logger: Logger instance
        channel_id: Channel id
        programs_count: Programmes in the timeline
        partial: Whether any listing day was missing
        repaired: Whether the validator changed the timeline
    """
    flags = [flag for flag, on in (("partial", partial), ("repaired", repaired)) if on]
    logger.info(
        f"Channel {channel_id}: {programs_count} programmes"
        + (f" [{', '.join(flags)}]" if flags else "")
    )


def log_output_stats(
    logger: logging.Logger,
    total_channels: int,
    total_programs: int
) -> None:
    """
    Log output statistics.

    Args:
        logger: Logger instance
        total_channels: Channels written
        total_programs: Programmes written
    """
    logger.info(
        f"Writing output: {total_channels} channels, {total_programs} programmes"
    )
