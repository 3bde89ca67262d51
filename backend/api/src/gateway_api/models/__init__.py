"""API-specific request/response models.

Domain models (Mandate, Payment, ...) are in gateway.models and are reused
here where appropriate.

Modules:
- common: Shared response wrappers
- mandates: Mandate create/authorize/manage bodies
- onboarding: Merchant onboarding bodies
"""
