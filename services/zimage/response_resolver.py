"""Locate the generated image URL inside an arbitrary upstream response."""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Union

JsonValue = Union[str, int, float, bool, None, Dict[str, "JsonValue"], List["JsonValue"]]

IMAGE_URL_PATTERN = re.compile(r"^https?://.*\.(png|jpg|jpeg|webp)", re.IGNORECASE)
ASSET_PATH_FRAGMENT = "/z_image/"


def _is_image_string(value: str) -> bool:
	return bool(IMAGE_URL_PATTERN.match(value)) or ASSET_PATH_FRAGMENT in value


def find_image_url(node: JsonValue) -> Optional[str]:
	"""Return the first plausible image URL found depth-first in `node`.

	At each node: an image-looking string is returned as is; a mapping with a
	`url` starting with `http` or `/` returns it; a mapping with a non-empty
	string `image_url` returns it; otherwise values (mapping insertion order)
	and list items are searched in turn.
	"""
	if isinstance(node, str):
		return node if _is_image_string(node) else None

	if isinstance(node, dict):
		url = node.get("url")
		if isinstance(url, str) and (url.startswith("http") or url.startswith("/")):
			return url
		image_url = node.get("image_url")
		if isinstance(image_url, str) and image_url:
			return image_url
		children = list(node.values())
	elif isinstance(node, list):
		children = node
	else:
		return None

	for child in children:
		found = find_image_url(child)
		if found:
			return found
	return None
