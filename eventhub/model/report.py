from enum import Enum
from typing import Self

from pydantic import BaseModel


class CheckStatus(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


class ErrorCategory(str, Enum):
    CONFIGURATION = "configuration"
    DEPLOYMENT = "deployment"
    AUTHORIZATION = "authorization"
    SECURITY = "security"
    TRANSIENT = "transient"


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_WARNINGS = 5

EXIT_CODES = {
    ErrorCategory.CONFIGURATION: 2,
    ErrorCategory.DEPLOYMENT: 3,
    ErrorCategory.AUTHORIZATION: 4,
}

STATUS_ICONS = {
    CheckStatus.PASS: "✅",
    CheckStatus.WARN: "⚠️ ",
    CheckStatus.FAIL: "❌",
}


class CheckResult(BaseModel):
    name: str
    title: str
    status: CheckStatus
    message: str
    details: dict[str, str] = {}
    category: ErrorCategory | None = None
    remediation: list[str] = []

    @classmethod
    def passed(cls, name: str, title: str, message: str, **details) -> Self:
        return cls(name=name, title=title, status=CheckStatus.PASS, message=message,
                   details={k: str(v) for k, v in details.items()})

    @classmethod
    def warned(
            cls, name: str, title: str, message: str,
            category: ErrorCategory = ErrorCategory.SECURITY,
            remediation: list[str] | None = None,
            **details
    ) -> Self:
        return cls(name=name, title=title, status=CheckStatus.WARN, message=message,
                   category=category, remediation=remediation or [],
                   details={k: str(v) for k, v in details.items()})

    @classmethod
    def failed(
            cls, name: str, title: str, message: str,
            category: ErrorCategory | None = None,
            remediation: list[str] | None = None,
            **details
    ) -> Self:
        return cls(name=name, title=title, status=CheckStatus.FAIL, message=message,
                   category=category, remediation=remediation or [],
                   details={k: str(v) for k, v in details.items()})


class VerificationReport(BaseModel):
    bucket_name: str
    object_key: str
    results: list[CheckResult] = []
    skipped: list[str] = []

    @property
    def passed(self) -> list[CheckResult]:
        return [r for r in self.results if r.status == CheckStatus.PASS]

    @property
    def warnings(self) -> list[CheckResult]:
        return [r for r in self.results if r.status == CheckStatus.WARN]

    @property
    def failures(self) -> list[CheckResult]:
        return [r for r in self.results if r.status == CheckStatus.FAIL]

    @property
    def fatal(self) -> bool:
        return len(self.failures) > 0

    def result(self, name: str) -> CheckResult | None:
        for r in self.results:
            if r.name == name:
                return r
        return None

    def exit_code(self, strict: bool = False) -> int:
        """
        0 when nothing failed, otherwise a code derived from the first failure's category.
        With strict, warnings alone exit with EXIT_WARNINGS.
        """
        if self.fatal:
            return EXIT_CODES.get(self.failures[0].category, EXIT_FAILURE)
        if strict and self.warnings:
            return EXIT_WARNINGS
        return EXIT_OK

    def render(self) -> str:
        lines = [
            "Bucket Name: " + self.bucket_name,
            "Probe Object: " + self.object_key,
            "─" * 60,
        ]
        for r in self.results:
            lines.append(f"{STATUS_ICONS[r.status]} {r.title}: {r.message}")
            for key, value in r.details.items():
                lines.append(f"   {key}: {value}")
            for hint in r.remediation:
                lines.append(f"   💡 {hint}")
        for name in self.skipped:
            lines.append(f"⏭️  {name}: skipped")

        lines.append("─" * 60)
        if self.fatal:
            lines.append(f"❌ Verification failed ({len(self.failures)} failed, {len(self.warnings)} warnings)")
        elif self.warnings:
            lines.append(f"⚠️  Verification passed with {len(self.warnings)} warnings")
        else:
            lines.append("🎉 All checks passed! GCS is configured correctly.")

        return "\n".join(lines)
