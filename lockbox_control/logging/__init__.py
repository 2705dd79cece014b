"""Step logging for the lockbox loop."""

from lockbox_control.logging.csv_logger import CSVLogger, STEP_COLUMNS, load_log

__all__ = ['CSVLogger', 'STEP_COLUMNS', 'load_log']
