from typing import Callable

from fastapi import Request

from .exceptions import ValidationError


def path_id(name: str = "id") -> Callable[[Request], int]:
    """
    Dependency factory for positive integer path ids.
    Anything else is a 400 "Invalid ID parameter" rather than a 422.
    """
    def _parse(request: Request) -> int:
        raw = request.path_params.get(name, "")
        if not (raw.isascii() and raw.isdigit()) or int(raw) <= 0:
            raise ValidationError("Invalid ID parameter")
        return int(raw)

    return _parse
