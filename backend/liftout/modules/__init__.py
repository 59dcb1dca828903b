"""
Domain modules.

Each module owns its models and services. Routers call the services; services
reach storage only through repositories.base_repository.LiftoutRepository.
"""
