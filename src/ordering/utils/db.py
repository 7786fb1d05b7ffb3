from protean.domain import Domain
from sqlalchemy import create_engine

SQL_PROVIDERS = ("sqlite", "postgresql")


def _register_models(domain: Domain, provider) -> None:
    # Touching ``_dao`` forces the model to be built and registered with
    # the provider's SQLAlchemy metadata.
    for _, aggregate_record in domain.registry.aggregates.items():
        if aggregate_record.cls.meta_.provider == provider.name:
            domain.repository_for(aggregate_record.cls)._dao  # noqa: B018

    for _, entity_record in domain.registry.entities.items():
        if entity_record.cls.meta_.provider == provider.name:
            domain.repository_for(entity_record.cls)._dao  # noqa: B018


def setup_db(domain: Domain) -> list[str]:
    """Create tables for every SQL-backed provider. Returns the provider names touched."""
    created = []
    with domain.domain_context():
        for name, provider in domain.providers.items():
            if provider.conn_info["provider"] in SQL_PROVIDERS:
                engine = create_engine(provider.conn_info["database_uri"])
                _register_models(domain, provider)
                provider._metadata.create_all(engine)
                created.append(name)
    return created


def drop_db(domain: Domain) -> list[str]:
    """Drop tables for every SQL-backed provider. Returns the provider names touched."""
    dropped = []
    with domain.domain_context():
        for name, provider in domain.providers.items():
            if provider.conn_info["provider"] in SQL_PROVIDERS:
                engine = create_engine(provider.conn_info["database_uri"])
                provider._metadata.drop_all(engine)
                dropped.append(name)
    return dropped
