"""In-memory buffer for `/imagine` requests awaiting quality and ratio choices."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class PendingGeneration:
	prompt: str
	chat_id: int


class PendingGenerationStore:
	"""Map opaque request ids to pending prompts; entries live until consumed or cancelled."""

	def __init__(self) -> None:
		self._pending: Dict[str, PendingGeneration] = {}

	def __len__(self) -> int:
		return len(self._pending)

	def create(self, prompt: str, chat_id: int) -> str:
		"""Store a prompt and return its request id (`{chat_id}_{epochMillis}`)."""
		request_id = f"{chat_id}_{int(time.time() * 1000)}"
		self._pending[request_id] = PendingGeneration(prompt=prompt, chat_id=chat_id)
		return request_id

	def get(self, request_id: str) -> Optional[PendingGeneration]:
		return self._pending.get(request_id)

	def consume(self, request_id: str) -> Optional[PendingGeneration]:
		"""Remove and return the pending request, or None if it is gone."""
		return self._pending.pop(request_id, None)

	def cancel(self, request_id: str) -> bool:
		return self._pending.pop(request_id, None) is not None
