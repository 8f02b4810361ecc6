"""S3 Bucket Compiler - compile declarative bucket descriptors into S3 configuration."""

from .builders import create_descriptor_from_spec
from .bundle import ConfigurationBundle
from .config import CompilerOptions
from .diagnostics import Severity, Violation, ViolationCode
from .models import BucketDescriptor
from .pipeline import CompileResult, PipelineState, compile_bucket, compile_bucket_spec
from .utils.errors import CompilationRejected, DescriptorError

__version__ = "0.1.0"

__all__ = [
    "compile_bucket",
    "compile_bucket_spec",
    "create_descriptor_from_spec",
    "CompileResult",
    "PipelineState",
    "CompilerOptions",
    "BucketDescriptor",
    "ConfigurationBundle",
    "Violation",
    "ViolationCode",
    "Severity",
    "DescriptorError",
    "CompilationRejected",
]
