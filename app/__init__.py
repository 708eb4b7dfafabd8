"""Bulk Keycloak provisioning package.

To provision users from Python:
    from app.core.provisioning_service import ProvisioningOrchestrator

To use the Keycloak client:
    from app.core.keycloak import KeycloakClient

Command line:
    python scripts/bulk_provision.py --csv users.csv
"""
