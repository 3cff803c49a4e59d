from threading import Lock
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

# --
# == Lazy cells
#
# A `Lazy` holds a value derived from data that is already set and never
# changes (typically a sealed request). The derivation runs on first access,
# outside of any lock, so concurrent first readers may compute the value
# redundantly. Only the first result to complete is published, and every
# reader returns that one published value.


class Lazy(Generic[T]):
	"""A write-once cell, filled by a pure derivation function on first
	access."""

	__slots__ = ["derive", "value", "isSet", "_publish"]

	def __init__(self, derive: Callable[[], T]) -> None:
		self.derive: Callable[[], T] = derive
		self.value: T | None = None
		self.isSet: bool = False
		# Only held for the check-and-assign, never during derivation
		self._publish: Lock = Lock()

	@staticmethod
	def Of(value: T) -> "Lazy[T]":
		"""Returns a cell that already holds the given value."""
		res: Lazy[T] = Lazy(lambda: value)
		res.get()
		return res

	def get(self) -> T:
		"""Returns the published value, deriving and publishing it if
		needed. Failures of the derivation propagate and leave the cell
		empty."""
		if self.isSet:
			return self.value  # type: ignore[return-value]
		value = self.derive()
		with self._publish:
			if not self.isSet:
				self.value = value
				# NOTE: The flag is set last, a reader that sees it set
				# sees the value as well.
				self.isSet = True
		return self.value  # type: ignore[return-value]

	def peek(self) -> T | None:
		"""Returns the value if it was published, `None` otherwise. Never
		triggers the derivation."""
		return self.value if self.isSet else None

	def __str__(self) -> str:
		return f"Lazy({self.value if self.isSet else '…'})"


# EOF
