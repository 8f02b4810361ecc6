"""Constants for the S3 Bucket Compiler."""

# Service identity
SERVICE_NAME = "s3-bucket-compiler"

# Pipeline stages
STAGE_VALIDATE = "validate"
STAGE_DEFAULT = "default"
STAGE_LIFECYCLE = "lifecycle"
STAGE_REPLICATION = "replication"
STAGE_NOTIFICATION = "notification"
STAGE_INVENTORY = "inventory"
STAGE_TIERING = "tiering"

# Descriptor sections (first segment of a violation path)
SECTION_NAME = "name"
SECTION_TAGS = "tags"
SECTION_VERSIONING = "versioning_enabled"
SECTION_OBJECT_LOCK_ENABLED = "enables_object_lock"
SECTION_OBJECT_LOCK = "object_lock"
SECTION_ENCRYPTION = "encryption"
SECTION_OWNERSHIP = "object_ownership"
SECTION_OWNER_ACCOUNT = "bucket_owner_account_id"
SECTION_WEBSITE = "website"
SECTION_CORS = "cors_rules"
SECTION_LIFECYCLE = "lifecycle_rules"
SECTION_REPLICATION = "replication"
SECTION_REPLICATION_RULES = "replication.rules"
SECTION_NOTIFICATION_DESTINATIONS = "notifications.destinations"
SECTION_INVENTORY = "inventory_rules"
SECTION_TIERING = "intelligent_tiering_rules"

# Bucket naming
BUCKET_NAME_MIN_LENGTH = 3
BUCKET_NAME_MAX_LENGTH = 63

# Tagging limits
MAX_BUCKET_TAGS = 50
MAX_TAG_KEY_LENGTH = 128
MAX_TAG_VALUE_LENGTH = 256

# CORS
MAX_CORS_RULES = 100
CORS_METHODS = frozenset({"GET", "PUT", "POST", "DELETE", "HEAD"})

# Object keys
MAX_OBJECT_KEY_LENGTH = 1024

# Encryption
SSE_AES256 = "AES256"
SSE_KMS = "aws:kms"
SSE_KMS_DSSE = "aws:kms:dsse"
SSE_ALGORITHMS = frozenset({SSE_AES256, SSE_KMS, SSE_KMS_DSSE})
KMS_ALGORITHMS = frozenset({SSE_KMS, SSE_KMS_DSSE})

# Object ownership
OWNERSHIP_BUCKET_OWNER_ENFORCED = "BucketOwnerEnforced"
OWNERSHIP_BUCKET_OWNER_PREFERRED = "BucketOwnerPreferred"
OWNERSHIP_OBJECT_WRITER = "ObjectWriter"
OBJECT_OWNERSHIP_MODES = frozenset(
    {OWNERSHIP_BUCKET_OWNER_ENFORCED, OWNERSHIP_BUCKET_OWNER_PREFERRED, OWNERSHIP_OBJECT_WRITER}
)

# Object lock
RETENTION_MODES = frozenset({"GOVERNANCE", "COMPLIANCE"})

# Website
WEBSITE_PROTOCOLS = frozenset({"http", "https"})

# Storage classes a lifecycle transition may target, ordered down the tier waterfall
TRANSITION_STORAGE_CLASSES = (
    "STANDARD_IA",
    "INTELLIGENT_TIERING",
    "ONEZONE_IA",
    "GLACIER_IR",
    "GLACIER",
    "DEEP_ARCHIVE",
)
TRANSITION_STORAGE_CLASS_RANK = {name: rank for rank, name in enumerate(TRANSITION_STORAGE_CLASSES)}
INFREQUENT_ACCESS_CLASSES = frozenset({"STANDARD_IA", "ONEZONE_IA"})
INFREQUENT_ACCESS_MIN_DAYS = 30

# Storage classes a replica may be written with
REPLICATION_STORAGE_CLASSES = frozenset(
    {
        "STANDARD",
        "REDUCED_REDUNDANCY",
        "STANDARD_IA",
        "ONEZONE_IA",
        "INTELLIGENT_TIERING",
        "GLACIER",
        "DEEP_ARCHIVE",
        "GLACIER_IR",
    }
)

# Lifecycle
MIN_NEWER_NONCURRENT_VERSIONS = 1
MAX_NEWER_NONCURRENT_VERSIONS = 100

# Replication
ACCOUNT_SCOPE_SAME = "same-account"
ACCOUNT_SCOPE_CROSS = "cross-account"
REPLICATION_TIME_THRESHOLD_MINUTES = 15
S3_ARN_PREFIX = "arn:aws:s3:::"

# Notification destinations, classified by address shape
DESTINATION_FUNCTION = "function"
DESTINATION_QUEUE = "queue"
DESTINATION_TOPIC = "topic"
DESTINATION_MARKERS = (
    (":lambda:", DESTINATION_FUNCTION),
    (":sqs:", DESTINATION_QUEUE),
    (":sns:", DESTINATION_TOPIC),
)
MAX_DESTINATIONS_PER_KIND = {
    DESTINATION_QUEUE: 1,
    DESTINATION_TOPIC: 1,
}

# Recognized notification events (create, remove, restore, replication, lifecycle families)
NOTIFICATION_EVENTS = frozenset(
    {
        "s3:ObjectCreated:*",
        "s3:ObjectCreated:Put",
        "s3:ObjectCreated:Post",
        "s3:ObjectCreated:Copy",
        "s3:ObjectCreated:CompleteMultipartUpload",
        "s3:ObjectRemoved:*",
        "s3:ObjectRemoved:Delete",
        "s3:ObjectRemoved:DeleteMarkerCreated",
        "s3:ObjectRestore:*",
        "s3:ObjectRestore:Post",
        "s3:ObjectRestore:Completed",
        "s3:ObjectRestore:Delete",
        "s3:Replication:*",
        "s3:Replication:OperationFailedReplication",
        "s3:Replication:OperationNotTracked",
        "s3:Replication:OperationMissedThreshold",
        "s3:Replication:OperationReplicatedAfterThreshold",
        "s3:LifecycleTransition",
        "s3:LifecycleExpiration:*",
        "s3:LifecycleExpiration:Delete",
        "s3:LifecycleExpiration:DeleteMarkerCreated",
    }
)

# Inventory
INVENTORY_FORMATS = frozenset({"CSV", "ORC", "Parquet"})
INVENTORY_FREQUENCIES = frozenset({"Daily", "Weekly"})
INVENTORY_ENCRYPTION_SSE_S3 = "SSE-S3"
INVENTORY_ENCRYPTION_SSE_KMS = "SSE-KMS"
INVENTORY_ENCRYPTIONS = frozenset({INVENTORY_ENCRYPTION_SSE_S3, INVENTORY_ENCRYPTION_SSE_KMS})
INVENTORY_OPTIONAL_FIELDS = frozenset(
    {
        "Size",
        "LastModifiedDate",
        "StorageClass",
        "ETag",
        "IsMultipartUploaded",
        "ReplicationStatus",
        "EncryptionStatus",
        "ObjectLockRetainUntilDate",
        "ObjectLockMode",
        "ObjectLockLegalHoldStatus",
        "IntelligentTieringAccessTier",
        "BucketKeyStatus",
        "ChecksumAlgorithm",
        "ObjectAccessControlList",
        "ObjectOwner",
    }
)

# Intelligent tiering access tiers with their allowed day ranges
TIERING_ACCESS_TIER_DAYS = {
    "ARCHIVE_ACCESS": (90, 730),
    "DEEP_ARCHIVE_ACCESS": (180, 730),
}

# Defaults
DEFAULT_OBJECT_OWNERSHIP = OWNERSHIP_BUCKET_OWNER_ENFORCED
DEFAULT_SSE_ALGORITHM = SSE_AES256
DEFAULT_INVENTORY_FORMAT = "CSV"
DEFAULT_INVENTORY_FREQUENCY = "Daily"
DEFAULT_INCLUDE_NONCURRENT_OBJECTS = True
