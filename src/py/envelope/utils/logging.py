import os
import sys
import time
from contextvars import ContextVar
from enum import Enum
from typing import Any, Callable, ClassVar, NamedTuple, TypeAlias

ERR = sys.stderr

# SEE: https://no-color.org/
NO_COLOR: bool = "NO_COLOR" in os.environ
FORCE_COLOR: bool = "FORCE_COLOR" in os.environ
COLOR: bool = FORCE_COLOR or NO_COLOR is False

LogOrigin: ContextVar[str] = ContextVar("LogOrigin", default="envelope")

TValue: TypeAlias = bool | int | float | str | bytes | None


class Term:
	BOLD: ClassVar[str] = "\033[1m" if COLOR else ""
	RESET: ClassVar[str] = "\033[0m" if COLOR else ""

	@staticmethod
	def Color(color: int) -> str:
		return f"\033[0;38;5;{color}m" if COLOR else ""


class LogLevel(Enum):
	Debug = 0
	Info = 10
	Warning = 30  # A Warning
	Error = 40  # A managed error
	Exception = 50  # An un-managed error


LOG_LEVEL_COLOR = {
	LogLevel.Debug: 31,
	LogLevel.Info: 75,
	LogLevel.Warning: 202,
	LogLevel.Error: 160,
	LogLevel.Exception: 124,
}


def levelNamed(name: str | None, default: LogLevel = LogLevel.Info) -> LogLevel:
	"""Returns the level with the given (case-insensitive) name."""
	if not name:
		return default
	for level in LogLevel:
		if level.name.lower() == name.strip().lower():
			return level
	return default


LOG_LEVEL: LogLevel = levelNamed(os.getenv("ENVELOPE_LOG_LEVEL"))


class LogEntry(NamedTuple):
	origin: str
	time: float
	level: LogLevel = LogLevel.Info
	message: str | None = None
	value: TValue = None
	context: dict[str, Any] | None = None


def formatData(value: Any) -> str:
	if value is None or value == () or value == [] or value == {}:
		return "◌"
	elif isinstance(value, dict):
		return " ".join(
			f"{Term.BOLD}{k}{Term.RESET}={formatData(v)}" for k, v in value.items()
		)
	elif isinstance(value, list) or isinstance(value, tuple):
		return ",".join(formatData(v) for v in value)
	elif isinstance(value, str):
		return repr(value) if " " in value or not value else value
	elif isinstance(value, bool):
		return "✓" if value else "✗"
	elif isinstance(value, float):
		return f"{value:0.2f}"
	else:
		return str(value)


def enabled(level: LogLevel) -> bool:
	return level.value >= LOG_LEVEL.value


def send(entry: LogEntry) -> LogEntry:
	if not enabled(entry.level):
		return entry
	clr: str = Term.Color(LOG_LEVEL_COLOR[entry.level])
	code: str = f" {entry.value}" if entry.value is not None else ""
	ERR.write(
		f"{clr}{Term.BOLD}[{entry.origin}]{Term.RESET}{code} {entry.message} {formatData(entry.context)}{Term.RESET}\n"
	)
	ERR.flush()
	return entry


def entry(
	message: str,
	*,
	level: LogLevel = LogLevel.Info,
	origin: str | None = None,
	value: TValue = None,
	context: dict[str, Any],
) -> LogEntry:
	return LogEntry(
		origin=origin or LogOrigin.get(),
		time=time.time(),
		level=level,
		message=message,
		value=value,
		context=context,
	)


def debug(message: str, *, origin: str | None = None, **context: Any) -> LogEntry:
	return send(entry(message, level=LogLevel.Debug, origin=origin, context=context))


def info(message: str, *, origin: str | None = None, **context: Any) -> LogEntry:
	return send(entry(message, origin=origin, context=context))


def warning(message: str, *, origin: str | None = None, **context: Any) -> LogEntry:
	return send(
		entry(message, level=LogLevel.Warning, origin=origin, context=context)
	)


def error(
	message: str,
	code: int | str | None,
	*,
	origin: str | None = None,
	**context: Any,
) -> LogEntry:
	return send(
		entry(
			message, level=LogLevel.Error, origin=origin, value=code, context=context
		)
	)


def exception(
	exception: Exception,
	message: str | None = None,
) -> Exception:
	try:
		stream = ERR
		stream.write(
			f"!!! EXCP {f'{message}: [{exception.__class__.__name__}] {exception}' if message else f'[{exception.__class__.__name__}] {exception}'}\n"
		)
		tb = exception.__traceback__
		while tb:
			code = tb.tb_frame.f_code
			stream.write(
				f"... in {code.co_name:15s} at {tb.tb_lineno:4d} in {code.co_filename}\n",
			)
			tb = tb.tb_next
		stream.flush()
	except Exception:  # nosec: B110
		# Swallow all exceptions so that this function can be called from an
		# exception handler safely.
		pass

	# Return the exception so that this function can be called like:
	#   raise exception(error)
	return exception


LOGGER_LEVEL: dict[Callable[..., LogEntry], LogLevel] = {
	debug: LogLevel.Debug,
	info: LogLevel.Info,
	warning: LogLevel.Warning,
	error: LogLevel.Error,
}


def logged(item: Callable[..., LogEntry]) -> bool:
	"""Takes one of the logging function, and tells if it is currently
	emitted. This is used to guard against running the whole entry
	building when not necessary."""
	return enabled(LOGGER_LEVEL.get(item, LogLevel.Info))


# EOF
