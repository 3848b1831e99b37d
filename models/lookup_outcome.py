from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class ErrorKind(str, Enum):
    INVALID_CREDENTIAL = "invalid_credential"
    RATE_LIMITED = "rate_limited"
    SERVICE_ERROR = "service_error"


# Classifications that halt the whole run
FATAL_KINDS = frozenset({ErrorKind.INVALID_CREDENTIAL, ErrorKind.RATE_LIMITED})


@dataclass(frozen=True)
class Found:
    city: str
    # Empty when the provider did not carry a job title
    job_title: str = ""


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class Classified:
    kind: ErrorKind
    # Diagnostic only; never inspected to decide behavior
    message: Optional[str] = None

    @property
    def is_fatal(self) -> bool:
        return self.kind in FATAL_KINDS


Outcome = Union[Found, NotFound, Classified]
