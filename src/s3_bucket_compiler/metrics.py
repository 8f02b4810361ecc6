"""Prometheus metrics for the S3 Bucket Compiler."""

from prometheus_client import Counter, Histogram

# Compilation metrics
compile_total = Counter(
    "s3_bucket_compiler_compile_total",
    "Total number of bucket compilations",
    ["result"],
)

compile_duration_seconds = Histogram(
    "s3_bucket_compiler_compile_duration_seconds",
    "Duration of bucket compilations in seconds",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
)

stage_duration_seconds = Histogram(
    "s3_bucket_compiler_stage_duration_seconds",
    "Duration of individual pipeline stages in seconds",
    ["stage"],
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1],
)

# Violation metrics
violations_total = Counter(
    "s3_bucket_compiler_violations_total",
    "Total number of violations reported",
    ["code", "severity"],
)

# Internal defects surfaced while compiling
error_total = Counter(
    "s3_bucket_compiler_error_total",
    "Total number of unexpected errors raised during compilation",
    ["stage", "error_type"],
)
