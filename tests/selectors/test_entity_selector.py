"""
Tests for the entity registry store.

Runs against SQLite in-memory via the ``session_factory`` fixture.
"""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import Numeric

from portfolio_kernel.db.base import Base
from portfolio_kernel.db.engine import session_scope
from portfolio_kernel.domain.entities import EntityDescriptor
from portfolio_kernel.exceptions import EntityNotFoundError
from portfolio_kernel.models.entity_connection import EntityConnection
from portfolio_kernel.selectors.entity_selector import EntityConnectionSelector
from portfolio_services.ports import EntityRegistry
from portfolio_services.registry import SqlEntityRegistry, register_entities, resolve_entity


@pytest.fixture
def seeded(session_factory):
    with session_factory() as session:
        session.add_all([
            EntityConnection(entity_id="t-3", entity_name="Gamma Holdings", display_order=2),
            EntityConnection(entity_id="t-1", entity_name="Alpha Pty Ltd", display_order=1),
            EntityConnection(
                entity_id="t-2", entity_name="Beta Trust", display_order=1, connected=False,
            ),
        ])
        session.commit()
    return session_factory


class TestEntityConnectionSelector:

    def test_all_in_display_order(self, seeded):
        with seeded() as session:
            entities = EntityConnectionSelector(session).all()
        assert [e.entity_id for e in entities] == ["t-1", "t-2", "t-3"]
        assert entities[1] == EntityDescriptor("t-2", "Beta Trust", connected=False)

    def test_connected_only(self, seeded):
        with seeded() as session:
            entities = EntityConnectionSelector(session).connected()
        assert [e.entity_id for e in entities] == ["t-1", "t-3"]

    def test_resolve_by_id_and_name(self, seeded):
        with seeded() as session:
            selector = EntityConnectionSelector(session)
            assert selector.resolve("t-3").entity_name == "Gamma Holdings"
            assert selector.resolve("alpha pty ltd").entity_id == "t-1"

    def test_resolve_unknown(self, seeded):
        with seeded() as session:
            with pytest.raises(EntityNotFoundError) as exc_info:
                EntityConnectionSelector(session).resolve("Delta")
        assert "Gamma Holdings" in exc_info.value.available


class TestSqlEntityRegistry:

    def test_satisfies_port(self, seeded):
        assert isinstance(SqlEntityRegistry(seeded), EntityRegistry)

    def test_registry_methods(self, seeded):
        registry = SqlEntityRegistry(seeded)
        assert len(registry.list_entities()) == 3
        assert [e.entity_id for e in registry.connected_entities()] == ["t-1", "t-3"]
        assert registry.resolve("Beta Trust").entity_id == "t-2"

    def test_resolve_entity_uses_registry_resolver(self, seeded):
        assert resolve_entity(SqlEntityRegistry(seeded), "GAMMA HOLDINGS").entity_id == "t-3"

    def test_repr(self):
        row = EntityConnection(entity_id="t-9", entity_name="Nine", connected=True)
        assert repr(row) == "<EntityConnection t-9 'Nine' connected=True>"


class TestRegisterEntities:

    def test_inserts_in_given_order(self, session_factory):
        written = register_entities([
            EntityDescriptor("t-2", "Zeta Trust"),
            EntityDescriptor("t-1", "Alpha Pty Ltd", connected=False),
        ])

        assert written == 2
        entities = SqlEntityRegistry(session_factory).list_entities()
        assert [e.entity_id for e in entities] == ["t-2", "t-1"]
        assert entities[1].connected is False

    def test_updates_existing_rows(self, seeded):
        register_entities([EntityDescriptor("t-2", "Beta Trust (NZ)", connected=True)])

        registry = SqlEntityRegistry(seeded)
        assert registry.resolve("t-2") == EntityDescriptor("t-2", "Beta Trust (NZ)")
        assert len(registry.list_entities()) == 3


class TestSessionScope:

    def test_rolls_back_on_error(self, session_factory):
        with pytest.raises(RuntimeError):
            with session_scope() as session:
                session.add(EntityConnection(entity_id="t-5", entity_name="Lost"))
                session.flush()
                raise RuntimeError("abort")

        assert SqlEntityRegistry(session_factory).list_entities() == []


class TestDeclarativeBase:

    def test_money_maps_to_fixed_point(self):
        money = Base.registry.type_annotation_map[Decimal]
        assert isinstance(money, Numeric)
        assert (money.precision, money.scale) == (38, 9)

    def test_timestamps_are_timezone_aware(self):
        assert Base.registry.type_annotation_map[datetime].timezone is True
