"""Compiler pipeline.

Drives one descriptor through a forward-only state machine::

    RECEIVED -> VALIDATING -> DEFAULTING -> COMPILING -> BUNDLED
                    |                           |
                    +--------> REJECTED <-------+

Validation is exhaustive: every validator runs before the pipeline decides
whether to reject. Compilers run in a fixed order and also report into the
shared diagnostics sink.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Mapping

from . import metrics
from .builders.descriptor import create_descriptor_from_spec
from .bundle import (
    WEBSITE_REDIRECT,
    WEBSITE_STATIC,
    CompiledEncryption,
    CompiledObjectLock,
    CompiledPublicAccessBlock,
    CompiledWebsite,
    ConfigurationBundle,
)
from .compilers import (
    compile_inventory_rules,
    compile_lifecycle_rules,
    compile_notifications,
    compile_replication,
    compile_tiering_rules,
)
from .config import CompilerOptions
from .constants import (
    STAGE_DEFAULT,
    STAGE_INVENTORY,
    STAGE_LIFECYCLE,
    STAGE_NOTIFICATION,
    STAGE_REPLICATION,
    STAGE_TIERING,
    STAGE_VALIDATE,
)
from .defaults import resolve_defaults
from .diagnostics import Diagnostics, Violation
from .logging import log_compile_event
from .models import BucketDescriptor, CorsRule, WebsiteConfig
from .tracing import add_span_attribute, set_span_status, trace_span
from .utils.errors import CompilationRejected, sanitize_exception
from .validators import run_field_validators

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    RECEIVED = "Received"
    VALIDATING = "Validating"
    DEFAULTING = "Defaulting"
    COMPILING = "Compiling"
    BUNDLED = "Bundled"
    REJECTED = "Rejected"


_TRANSITIONS = {
    PipelineState.RECEIVED: frozenset({PipelineState.VALIDATING}),
    PipelineState.VALIDATING: frozenset({PipelineState.DEFAULTING, PipelineState.REJECTED}),
    PipelineState.DEFAULTING: frozenset({PipelineState.COMPILING}),
    PipelineState.COMPILING: frozenset({PipelineState.BUNDLED, PipelineState.REJECTED}),
    PipelineState.BUNDLED: frozenset(),
    PipelineState.REJECTED: frozenset(),
}


@dataclass(frozen=True)
class CompileResult:
    """Outcome of one compilation.

    ``bundle`` is set only when ``state`` is ``BUNDLED``. ``violations``
    holds every reported violation in deterministic order; a bundled result
    may still carry warnings.
    """

    bucket_name: str | None
    state: PipelineState
    bundle: ConfigurationBundle | None
    violations: tuple[Violation, ...]
    states: tuple[PipelineState, ...]

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.BUNDLED

    @property
    def errors(self) -> tuple[Violation, ...]:
        return tuple(violation for violation in self.violations if violation.is_error)

    @property
    def warnings(self) -> tuple[Violation, ...]:
        return tuple(violation for violation in self.violations if not violation.is_error)

    def violation_report(self) -> list[dict[str, Any]]:
        """Return the violations as plain dicts, in deterministic order."""
        return [violation.to_dict() for violation in self.violations]

    def raise_for_violations(self) -> ConfigurationBundle:
        """Return the bundle, or raise if the descriptor was rejected.

        Raises:
            CompilationRejected: If the pipeline ended in ``REJECTED``
        """
        if not self.ok:
            raise CompilationRejected(self.bucket_name, self.violations)
        return self.bundle


class BucketCompiler:
    """Compiles a single descriptor. Instances are single-use."""

    def __init__(
        self,
        descriptor: BucketDescriptor,
        options: CompilerOptions | None = None,
        diagnostics: Diagnostics | None = None,
    ):
        self.descriptor = descriptor
        self.options = options or CompilerOptions()
        # Shape errors found while building the descriptor are judged with the validators
        self.diagnostics = Diagnostics() if diagnostics is None else diagnostics
        self.state = PipelineState.RECEIVED
        self._history = [PipelineState.RECEIVED]

    @property
    def bucket_name(self) -> str | None:
        return self.descriptor.name

    def _advance(self, state: PipelineState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal pipeline transition {self.state.value} -> {state.value}")
        self.state = state
        self._history.append(state)

    @contextmanager
    def _stage(self, stage: str) -> Iterator[None]:
        start = time.monotonic()
        with trace_span(f"compile_{stage}", stage=stage, attributes={"bucket.name": self.bucket_name or ""}):
            yield
        metrics.stage_duration_seconds.labels(stage=stage).observe(time.monotonic() - start)

    def _rejected(self) -> bool:
        return self.diagnostics.has_errors(self.options.warnings_as_errors)

    def run(self) -> CompileResult:
        """Run the pipeline to a terminal state.

        Returns:
            Compile result carrying either the bundle or the violations

        Raises:
            RuntimeError: If run twice or on an internal defect
        """
        start = time.monotonic()
        log_compile_event(
            logger, self.bucket_name, STAGE_VALIDATE, "started", "CompileStarted",
            f"Compiling bucket {self.bucket_name}",
        )

        with trace_span("compile_bucket", attributes={"bucket.name": self.bucket_name or ""}):
            try:
                result = self._run()
            except Exception as e:
                metrics.error_total.labels(stage=self.state.value, error_type=type(e).__name__).inc()
                log_compile_event(
                    logger, self.bucket_name, self.state.value, "error", "CompileFailed",
                    f"Unexpected error while compiling: {sanitize_exception(e)}",
                    level=logging.ERROR,
                )
                raise
            add_span_attribute("compile.state", result.state.value)
            add_span_attribute("compile.violations", len(result.violations))
            set_span_status(result.ok, None if result.ok else f"{len(result.errors)} error(s)")

        metrics.compile_duration_seconds.observe(time.monotonic() - start)
        metrics.compile_total.labels(result="bundled" if result.ok else "rejected").inc()
        for violation in result.violations:
            metrics.violations_total.labels(code=violation.code.value, severity=violation.severity.value).inc()
        return result

    def _run(self) -> CompileResult:
        self._advance(PipelineState.VALIDATING)
        with self._stage(STAGE_VALIDATE):
            run_field_validators(self.descriptor, self.diagnostics)
        if self._rejected():
            return self._reject(STAGE_VALIDATE)

        self._advance(PipelineState.DEFAULTING)
        with self._stage(STAGE_DEFAULT):
            resolved = resolve_defaults(self.descriptor)

        self._advance(PipelineState.COMPILING)
        with self._stage(STAGE_LIFECYCLE):
            lifecycle_rules = compile_lifecycle_rules(resolved, self.diagnostics)
        with self._stage(STAGE_REPLICATION):
            replication = compile_replication(resolved, self.diagnostics)
        with self._stage(STAGE_NOTIFICATION):
            notifications = compile_notifications(resolved, self.diagnostics, self.options.max_object_key_length)
        with self._stage(STAGE_INVENTORY):
            inventory_rules = compile_inventory_rules(resolved, self.diagnostics)
        with self._stage(STAGE_TIERING):
            tiering_rules = compile_tiering_rules(resolved, self.diagnostics)
        if self._rejected():
            return self._reject(STAGE_TIERING)

        bundle = ConfigurationBundle(
            bucket_name=resolved.name,
            owner_account_id=resolved.bucket_owner_account_id,
            tags=tuple(sorted(resolved.tags.items())),
            versioning_enabled=resolved.versioning_enabled,
            object_lock=_compile_object_lock(resolved),
            encryption=CompiledEncryption(
                sse_algorithm=resolved.encryption.sse_algorithm,
                kms_master_key_id=resolved.encryption.kms_master_key_id,
                bucket_key_enabled=resolved.encryption.bucket_key_enabled,
            ),
            public_access_block=CompiledPublicAccessBlock(
                block_public_acls=resolved.public_access_block.block_public_acls,
                block_public_policy=resolved.public_access_block.block_public_policy,
                ignore_public_acls=resolved.public_access_block.ignore_public_acls,
                restrict_public_buckets=resolved.public_access_block.restrict_public_buckets,
            ),
            object_ownership=resolved.object_ownership,
            requester_pays=resolved.requester_pays,
            transfer_acceleration=resolved.transfer_acceleration,
            policy=resolved.policy,
            cors_rules=tuple(_normalize_cors_rule(rule) for rule in resolved.cors_rules),
            website=_compile_website(resolved.website),
            lifecycle_rules=lifecycle_rules,
            replication=replication,
            notifications=notifications,
            inventory_rules=inventory_rules,
            intelligent_tiering_rules=tiering_rules,
        )

        self._advance(PipelineState.BUNDLED)
        violations = self.diagnostics.sorted()
        log_compile_event(
            logger, self.bucket_name, STAGE_TIERING, "bundled", "CompileSucceeded",
            f"Compiled bucket {self.bucket_name}",
            warnings=len(violations),
        )
        return CompileResult(self.bucket_name, self.state, bundle, violations, tuple(self._history))

    def _reject(self, stage: str) -> CompileResult:
        self._advance(PipelineState.REJECTED)
        violations = self.diagnostics.sorted()
        log_compile_event(
            logger, self.bucket_name, stage, "rejected", "CompileRejected",
            f"Bucket {self.bucket_name} rejected with {len(violations)} violation(s)",
            level=logging.WARNING,
            violations=[violation.path for violation in violations],
        )
        return CompileResult(self.bucket_name, self.state, None, violations, tuple(self._history))


def _compile_object_lock(descriptor: BucketDescriptor) -> CompiledObjectLock | None:
    if not descriptor.enables_object_lock:
        return None
    lock = descriptor.object_lock
    if lock is None:
        return CompiledObjectLock()
    retention = lock.default_retention
    return CompiledObjectLock(
        token=lock.token,
        retention_mode=retention.retention_mode if retention else None,
        retention_days=retention.retention_days if retention else None,
        retention_years=retention.retention_years if retention else None,
    )


def _compile_website(website: WebsiteConfig | None) -> CompiledWebsite | None:
    if website is None:
        return None
    if website.redirect_requests_for_an_object is not None:
        return CompiledWebsite(kind=WEBSITE_REDIRECT, redirect=website.redirect_requests_for_an_object)
    static = website.static_website
    return CompiledWebsite(
        kind=WEBSITE_STATIC,
        index_document=static.index_document,
        error_document=static.error_document,
        routing_rules=static.routing_rules,
    )


def _normalize_cors_rule(rule: CorsRule) -> CorsRule:
    return CorsRule(
        allowed_methods=tuple(dict.fromkeys(method.upper() for method in rule.allowed_methods)),
        allowed_origins=rule.allowed_origins,
        allowed_headers=rule.allowed_headers,
        expose_headers=rule.expose_headers,
        max_age_seconds=rule.max_age_seconds,
        id=rule.id,
    )


def compile_bucket(descriptor: BucketDescriptor, options: CompilerOptions | None = None) -> CompileResult:
    """Compile a bucket descriptor.

    Args:
        descriptor: Descriptor to compile; it is never modified
        options: Compiler options

    Returns:
        Compile result in state ``BUNDLED`` or ``REJECTED``
    """
    return BucketCompiler(descriptor, options).run()


def compile_bucket_spec(spec: Mapping[str, Any], options: CompilerOptions | None = None) -> CompileResult:
    """Build a descriptor from a plain mapping and compile it.

    Values of the wrong type are reported as violations of the validation
    stage and reject the descriptor along with every other violation found.
    """
    diagnostics = Diagnostics()
    descriptor = create_descriptor_from_spec(spec, diagnostics)
    return BucketCompiler(descriptor, options, diagnostics).run()
