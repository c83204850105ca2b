from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

# Field name used by the common CAPTCHA widgets (reCAPTCHA, hCaptcha)
CAPTCHA_RESPONSE_FIELD = "g-recaptcha-response"


@dataclass(frozen=True)
class CaptchaResult:
    success: bool
    errors: list[str] = field(default_factory=list)


class CaptchaVerifier(Protocol):
    """
    Checks the token posted by a CAPTCHA widget.

    Verification itself (calling the provider's API) belongs to the host
    application; Flash Forms only asks for a verdict.
    """

    def verify(self, token: str | None, remote_ip: str | None) -> CaptchaResult: ...


class NullCaptchaVerifier:
    """Accepts every submission. Used when no verifier is configured."""

    def verify(self, token: str | None, remote_ip: str | None) -> CaptchaResult:  # noqa: ARG002
        return CaptchaResult(success=True)
