"""
Proof-of-storage verification for the payment proof bucket.

Each check is a named object that returns a pass/warn/fail CheckResult. The
Verifier runs them in order against an ObjectStore; a failed check skips the
rest of the sequence except for checks marked as finalizers, which still run
once the probe object has been uploaded.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlsplit

import httpx
import structlog

from eventhub.errors import EventHubError
from eventhub.model.report import CheckResult, CheckStatus, ErrorCategory, VerificationReport
from eventhub.object_store import ObjectStore, PRIVATE_CACHE_CONTROL, gs_path, public_url


SIGNED_URL_LIFETIME = timedelta(minutes=15)
PROBE_PREFIX = "test-uploads"
PROBE_CONTENT_TYPE = "text/plain"
REQUIRED_SIGNATURE_PARAMS = ("X-Goog-Signature", "X-Goog-Expires")


def probe_object_key(now: datetime) -> str:
    epoch_millis = int(now.timestamp() * 1000)
    return f"{PROBE_PREFIX}/test-{epoch_millis}.txt"


def probe_content(now: datetime) -> bytes:
    return f"Test file from EventHub GCS Test - {now.isoformat()}".encode("utf-8")


@dataclass
class ProbeContext:
    """State shared between the checks of a single run."""
    bucket_name: str
    object_key: str
    content: bytes
    uploaded: bool = False
    signed_url: str | None = None


class Check:
    name: str = ""
    title: str = ""
    # The sequence cannot continue without this check's output
    critical: bool = False
    # Runs even after a fatal failure, provided the probe object exists
    finalizer: bool = False

    async def run(self, ctx: ProbeContext, store: ObjectStore, http: httpx.AsyncClient) -> CheckResult:
        raise NotImplementedError

    def passed(self, message: str, **details) -> CheckResult:
        return CheckResult.passed(self.name, self.title, message, **details)

    def warned(self, message: str, category=ErrorCategory.SECURITY, remediation=None, **details) -> CheckResult:
        return CheckResult.warned(self.name, self.title, message, category=category,
                                  remediation=remediation, **details)

    def failed(self, message: str, category=None, remediation=None, **details) -> CheckResult:
        return CheckResult.failed(self.name, self.title, message, category=category,
                                  remediation=remediation, **details)

    def from_error(self, error: EventHubError) -> CheckResult:
        """Transient errors only abort the run when later checks depend on this one."""
        if error.category == ErrorCategory.TRANSIENT and not self.critical:
            return self.warned(str(error), category=ErrorCategory.TRANSIENT)
        if self.finalizer:
            return self.warned(str(error), category=error.category, remediation=error.remediation())
        return self.failed(str(error), category=error.category, remediation=error.remediation())


class BucketExistsCheck(Check):
    name = "bucket_exists"
    title = "Bucket exists"
    critical = True

    async def run(self, ctx, store, http):
        if await store.bucket_exists(ctx.bucket_name):
            return self.passed("Bucket exists and is accessible")

        return self.failed(
            "Bucket not found",
            category=ErrorCategory.DEPLOYMENT,
            remediation=[f"Create bucket: gsutil mb gs://{ctx.bucket_name}"],
        )


class BucketMetadataCheck(Check):
    name = "bucket_metadata"
    title = "Bucket permissions"
    critical = True

    async def run(self, ctx, store, http):
        metadata = await store.get_bucket_metadata(ctx.bucket_name)
        return self.passed(
            "Can read bucket metadata",
            location=metadata.location,
            storage_class=metadata.storage_class,
        )


class BucketPrivacyCheck(Check):
    name = "bucket_privacy"
    title = "Bucket is private"

    async def run(self, ctx, store, http):
        policy = await store.get_iam_policy(ctx.bucket_name)
        public = policy.public_bindings()
        if not public:
            return self.passed("Bucket is PRIVATE (secure)")

        return self.warned(
            "Bucket has PUBLIC access!",
            remediation=[f"Run: gsutil iam ch -d allUsers:objectViewer gs://{ctx.bucket_name}"],
            public_roles=", ".join(b.role for b in public),
        )


class UploadProbeCheck(Check):
    name = "upload"
    title = "File upload"
    critical = True

    async def run(self, ctx, store, http):
        await store.upload(
            ctx.bucket_name,
            ctx.object_key,
            ctx.content,
            content_type=PROBE_CONTENT_TYPE,
            cache_control=PRIVATE_CACHE_CONTROL,
        )
        ctx.uploaded = True
        return self.passed("File uploaded successfully", path=gs_path(ctx.bucket_name, ctx.object_key))


class DirectAccessCheck(Check):
    name = "direct_access"
    title = "Direct access blocked"

    async def run(self, ctx, store, http):
        url = public_url(ctx.bucket_name, ctx.object_key)
        try:
            response = await http.get(url)
        except httpx.RequestError as e:
            # Indistinguishable from enforcement as far as the caller is concerned
            return self.passed("Direct access blocked (secure)", url=url, blocked_by="network", error=repr(e))

        if response.is_success:
            return self.warned(
                "File is publicly accessible!",
                remediation=["Bucket should be private for security"],
                url=url,
                status=response.status_code,
            )

        return self.passed(
            "Direct access blocked (secure)",
            url=url,
            blocked_by="status",
            status=f"{response.status_code} {response.reason_phrase}".strip(),
        )


class SignedUrlIssueCheck(Check):
    name = "signed_url_issue"
    title = "Signed URL generation"
    critical = True

    def __init__(self, lifetime: timedelta = SIGNED_URL_LIFETIME):
        self.lifetime = lifetime

    async def run(self, ctx, store, http):
        ctx.signed_url = await store.generate_signed_url(
            ctx.bucket_name, ctx.object_key, expiration=self.lifetime, method="GET"
        )
        minutes = int(self.lifetime.total_seconds() // 60)
        preview = ctx.signed_url[:80] + "..."

        params = parse_qs(urlsplit(ctx.signed_url).query)
        missing = [p for p in REQUIRED_SIGNATURE_PARAMS if p not in params]
        if missing:
            return self.warned(
                "Signed URL is missing signature parameters",
                missing=", ".join(missing),
                preview=preview,
            )

        return self.passed(
            "Signed URL generated successfully",
            preview=preview,
            expires_in=f"{minutes} minutes",
        )


class SignedUrlRedeemCheck(Check):
    name = "signed_url_redeem"
    title = "Signed URL access"

    async def run(self, ctx, store, http):
        if ctx.signed_url is None:
            return self.warned("No signed URL was issued")

        try:
            response = await http.get(ctx.signed_url)
        except httpx.RequestError as e:
            return self.warned(f"Error accessing signed URL: {e!r}", category=ErrorCategory.TRANSIENT)

        if not response.is_success:
            return self.warned("Signed URL failed", status=response.status_code)

        if response.content != ctx.content:
            return self.warned(
                "Signed URL returned different content than was uploaded",
                expected_bytes=len(ctx.content),
                received_bytes=len(response.content),
            )

        return self.passed(
            "Signed URL works! File is accessible",
            content=response.content[:50].decode("utf-8", errors="replace") + "...",
        )


class CleanupCheck(Check):
    name = "cleanup"
    title = "File cleanup"
    finalizer = True

    async def run(self, ctx, store, http):
        await store.delete(ctx.bucket_name, ctx.object_key)
        ctx.uploaded = False
        return self.passed("Test file deleted successfully")


def default_checks() -> list[Check]:
    return [
        BucketExistsCheck(),
        BucketMetadataCheck(),
        BucketPrivacyCheck(),
        UploadProbeCheck(),
        DirectAccessCheck(),
        SignedUrlIssueCheck(),
        SignedUrlRedeemCheck(),
        CleanupCheck(),
    ]


class Verifier:

    def __init__(self, store: ObjectStore, http: httpx.AsyncClient, bucket_name: str,
                 checks: list[Check] | None = None, logger=None):
        self.store = store
        self.http = http
        self.bucket_name = bucket_name
        self.checks = checks if checks is not None else default_checks()
        self.logger = logger or structlog.get_logger()

    async def run(self, now: datetime | None = None) -> VerificationReport:
        now = now or datetime.now(timezone.utc)
        ctx = ProbeContext(
            bucket_name=self.bucket_name,
            object_key=probe_object_key(now),
            content=probe_content(now),
        )
        report = VerificationReport(bucket_name=ctx.bucket_name, object_key=ctx.object_key)
        self.logger.info("Starting storage verification", bucket=ctx.bucket_name, key=ctx.object_key)

        for check in self.checks:
            if report.fatal and not (check.finalizer and ctx.uploaded):
                report.skipped.append(check.name)
                continue
            if check.finalizer and not ctx.uploaded:
                report.skipped.append(check.name)
                continue

            result = await self._run_check(check, ctx)
            report.results.append(result)

        self.logger.info(
            "Storage verification finished",
            bucket=ctx.bucket_name,
            passed=len(report.passed),
            warnings=len(report.warnings),
            failures=len(report.failures),
        )
        return report

    async def _run_check(self, check: Check, ctx: ProbeContext) -> CheckResult:
        try:
            result = await check.run(ctx, self.store, self.http)
        except EventHubError as e:
            result = check.from_error(e)
        except Exception as e:
            self.logger.exception("Unexpected error in check", check=check.name)
            if check.finalizer:
                result = check.warned(f"Unexpected error: {e!r}", category=None)
            else:
                result = check.failed(f"Unexpected error: {e!r}")

        log = self.logger.warning if result.status != CheckStatus.PASS else self.logger.info
        log("Check finished", check=check.name, status=result.status.value, message=result.message)
        return result


async def verify_bucket(store: ObjectStore, bucket_name: str, logger=None,
                        http: httpx.AsyncClient | None = None) -> VerificationReport:
    """Run the default checks, opening an unauthenticated HTTP client if none is given."""
    if http is not None:
        return await Verifier(store, http, bucket_name, logger=logger).run()

    async with httpx.AsyncClient(follow_redirects=True) as client:
        return await Verifier(store, client, bucket_name, logger=logger).run()
