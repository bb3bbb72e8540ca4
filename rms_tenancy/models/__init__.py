from rms_tenancy.models.tenant import (
    TenantRecord,
    TenantStatus,
    SubscriptionPlan,
    FeatureLimits,
    features_for,
)
from rms_tenancy.models.tenant_tables import tenant_metadata, TENANT_TABLE_NAMES
