from rms_tenancy.services.registry import TenantRegistry
from rms_tenancy.services.provisioner import SchemaProvisioner
from rms_tenancy.services.onboarding import TenantOnboarding
from rms_tenancy.services.reconciler import reconcile_stale_tenants
