"""Core Business Logic Module

Module Structure:
    - keycloak/               : Low-level Keycloak Admin API client and errors
    - catalog.py              : Ordered request templates and their resolvers
    - provisioning_service.py : Per-user provisioning sequence with compensation
    - batch.py                : Runs the sequence once per user code
    - row_source.py           : CSV reader for user codes
    - validators.py           : User code validation

Public APIs:
    Provisioning (app.core.provisioning_service):
        - ProvisioningOrchestrator.provision()
        - select_user_id(), select_group_id()

    Batch (app.core.batch):
        - provision_batch()
        - BatchSummary

    Catalog (app.core.catalog):
        - build_catalog(), resolve_step()
        - StepKind, ProvisioningContext, StepInstance
"""
