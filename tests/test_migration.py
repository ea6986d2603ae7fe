from __future__ import annotations

import asyncio
import json
from typing import List

import pytest

from provset.errors import ProviderNotFoundError
from provset.events import EventBus, PipelineEvent
from provset.migration import (
    MigrationCompatibility,
    MigrationManager,
    MigrationOptions,
    assess_risk,
    check_compatibility,
    provider_family,
)
from provset.registry.models import ProviderConfiguration
from provset.registry.sim import SimProviderRegistry, SimWorld

PG_CAPABILITIES = ["database", "transactions", "setup-automation", "wizard-integration"]


def _target(provider_type: str = "supabase-db", capabilities: List[str] | None = None):
    return ProviderConfiguration(
        id=f"{provider_type}-target",
        name="target",
        type=provider_type,
        category="database",
        capabilities=list(PG_CAPABILITIES if capabilities is None else capabilities),
        config={"supabase_url": "https://rsvp.supabase.co"},
    )


def _world(source_type: str = "postgresql", records: int = 5, **kwargs) -> SimWorld:
    world = SimWorld(SimProviderRegistry(**kwargs))
    asyncio.run(world.seed_provider("source", source_type, records=records))
    return world


def test_provider_family_and_compatibility() -> None:
    assert provider_family("supabase-db") == "database"
    assert provider_family("mysql") == "database"
    assert provider_family("jwt-local-auth") == "auth"
    assert provider_family("smtp-email") == "email"
    assert provider_family("pocketbase-all-in-one") == "other"

    compat = check_compatibility(
        "postgresql", "supabase-db", ["database"], ["database", "realtime"]
    )
    assert compat.schema_compatible and compat.data_compatible and compat.feature_compatible
    assert compat.warnings == []

    compat = check_compatibility("local-auth", "smtp-email", ["auth"], [])
    assert not compat.schema_compatible
    assert not compat.data_compatible
    assert not compat.feature_compatible
    assert len(compat.warnings) == 3


def test_risk_levels() -> None:
    clean = MigrationCompatibility()
    assert assess_risk(clean, 100) == "low"
    assert assess_risk(clean, 10_001) == "medium"
    assert assess_risk(MigrationCompatibility(feature_compatible=False), 0) == "low"
    assert assess_risk(MigrationCompatibility(schema_compatible=False), 0) == "medium"
    assert (
        assess_risk(MigrationCompatibility(schema_compatible=False, data_compatible=False), 0)
        == "high"
    )


def test_plan_for_compatible_providers() -> None:
    world = _world()
    manager = MigrationManager(world.registry)

    plan = asyncio.run(manager.plan_migration("source", "target", _target()))

    assert plan.migration_id.startswith("migration_source_to_target_")
    assert plan.source_provider.type == "postgresql"
    assert plan.target_provider.type == "supabase-db"
    assert [step.id for step in plan.steps] == [
        "validate-migration",
        "create-backup",
        "prepare-target",
        "export-data",
        "import-data",
        "verify-data",
        "update-config",
        "test-functionality",
    ]
    assert plan.estimated_total_time == 275
    assert plan.data_size == 5
    assert plan.risk_level == "low"
    assert plan.backup_required is False


def test_plan_for_incompatible_providers_adds_transform_and_raises_risk() -> None:
    world = _world("pocketbase-all-in-one")
    manager = MigrationManager(world.registry)

    plan = asyncio.run(manager.plan_migration("source", "target", _target("postgresql", [])))

    assert "transform-data" in [step.id for step in plan.steps]
    assert plan.risk_level == "high"
    assert plan.backup_required is True

    result = asyncio.run(manager.validate_migration("source", "target", _target("postgresql", [])))
    assert result.valid is False
    assert result.errors == [
        "Schema compatibility issues detected",
        "Data compatibility issues detected",
    ]
    assert "High-risk migration - backup strongly recommended" in result.warnings


def test_plan_requires_known_providers() -> None:
    world = _world()
    manager = MigrationManager(world.registry)

    with pytest.raises(ProviderNotFoundError) as exc:
        asyncio.run(manager.plan_migration("ghost", "target", _target()))
    assert exc.value.message == "Source provider 'ghost' not found"

    with pytest.raises(ProviderNotFoundError) as exc:
        asyncio.run(manager.plan_migration("source", "target"))
    assert exc.value.message == "Target provider 'target' not found and no config provided"

    result = asyncio.run(manager.validate_migration("source", "target"))
    assert result.valid is False
    assert result.errors[0].startswith("Migration validation failed: ")


def test_execute_moves_records_onto_new_target() -> None:
    world = _world(records=5)
    events = EventBus()
    seen: List[str] = []
    events.subscribe(PipelineEvent.MIGRATION_STARTED, lambda run: seen.append("started"))
    events.subscribe(PipelineEvent.MIGRATION_COMPLETED, lambda run: seen.append(run.status))
    manager = MigrationManager(world.registry, events=events)
    target_config = _target()

    async def scenario():
        plan = await manager.plan_migration("source", "target", target_config)
        return await manager.execute_migration(plan, target_config)

    progress = asyncio.run(scenario())

    assert progress.status == "completed"
    assert progress.completed_steps == progress.total_steps == 8
    assert progress.backup_id == "backup-source-0001"
    target = world.registry.get_provider("target")
    assert target is not None and target.running
    assert target.records == [{"id": idx} for idx in range(5)]
    exported = json.dumps([{"id": idx} for idx in range(5)], sort_keys=True).encode("utf-8")
    assert progress.data_transferred == len(exported)
    assert world.registry.get_provider_info("target").description.startswith("Migrated from source")
    assert progress.find_step("prepare-target").result.data["registered"] is True
    assert seen == ["started", "completed"]
    assert manager.get_migration_history() == [progress]
    assert manager.get_active_migrations() == []


def test_failed_migration_restores_source_and_removes_target() -> None:
    world = _world(fail_on={"update_provider_config": "config store locked"})
    manager = MigrationManager(world.registry)
    target_config = _target()

    async def scenario():
        plan = await manager.plan_migration("source", "target", target_config)
        return await manager.execute_migration(plan, target_config)

    progress = asyncio.run(scenario())

    assert progress.status == "failed"
    assert len(progress.errors) == 1
    assert progress.errors[0].step_id == "update-config"
    assert [(action.action, action.target, action.outcome) for action in progress.rollback] == [
        ("restore", "source", "succeeded"),
        ("stop", "target", "succeeded"),
        ("unregister", "target", "succeeded"),
    ]
    assert not world.registry.has_provider("target")
    assert world.registry.has_provider("source")


def test_preserve_source_skips_rollback() -> None:
    world = _world(fail_on={"update_provider_config": "config store locked"})
    manager = MigrationManager(world.registry)
    target_config = _target()

    async def scenario():
        plan = await manager.plan_migration("source", "target", target_config)
        return await manager.execute_migration(
            plan, target_config, MigrationOptions(preserve_source=True)
        )

    progress = asyncio.run(scenario())

    assert progress.status == "failed"
    assert progress.rollback == []
    assert world.registry.has_provider("target")


def test_source_without_export_support_fails_at_export() -> None:
    world = _world("local-auth")
    manager = MigrationManager(world.registry)
    target_config = _target("local-auth", ["auth", "password-reset"])

    async def scenario():
        plan = await manager.plan_migration("source", "target", target_config)
        return await manager.execute_migration(plan, target_config)

    progress = asyncio.run(scenario())

    assert progress.status == "failed"
    assert progress.errors[0].message == "Provider 'source' does not support data export"
    assert progress.find_step("import-data").status == "pending"
    assert progress.rollback[0].outcome == "succeeded"


def test_low_risk_migration_can_skip_backup() -> None:
    world = _world()
    manager = MigrationManager(world.registry)
    target_config = _target()

    async def scenario():
        plan = await manager.plan_migration("source", "target", target_config)
        return await manager.execute_migration(
            plan, target_config, MigrationOptions(create_backup=False)
        )

    progress = asyncio.run(scenario())

    assert progress.status == "completed"
    assert progress.find_step("create-backup") is None
    assert progress.backup_id is None
    assert ("backup_provider", "source") not in world.registry.calls


def test_validate_only_migration_does_not_touch_providers() -> None:
    world = _world()
    manager = MigrationManager(world.registry)
    target_config = _target()
    calls_before = list(world.registry.calls)

    async def scenario():
        plan = await manager.plan_migration("source", "target", target_config)
        return await manager.execute_migration(
            plan, target_config, MigrationOptions(validate_only=True)
        )

    progress = asyncio.run(scenario())

    assert progress.status == "completed"
    assert progress.completed_steps == 0
    assert progress.run_id == progress.migration_id
    assert world.registry.calls == calls_before


def test_cancel_migration_mid_run() -> None:
    class GatedRegistry(SimProviderRegistry):
        gate: asyncio.Event
        entered: asyncio.Event

        async def backup_provider(self, name: str) -> str:
            backup_id = await super().backup_provider(name)
            self.entered.set()
            await self.gate.wait()
            return backup_id

    registry = GatedRegistry()
    world = SimWorld(registry)
    events = EventBus()
    seen: List[str] = []
    events.subscribe(PipelineEvent.MIGRATION_CANCELLED, lambda run: seen.append("cancelled"))
    events.subscribe(PipelineEvent.MIGRATION_COMPLETED, lambda run: seen.append("completed"))
    manager = MigrationManager(registry, events=events)
    target_config = _target()

    async def scenario():
        registry.gate = asyncio.Event()
        registry.entered = asyncio.Event()
        await world.seed_provider("source", "postgresql", records=3)
        plan = await manager.plan_migration("source", "target", target_config)
        task = asyncio.create_task(manager.execute_migration(plan, target_config))
        await registry.entered.wait()
        running = manager.get_migration_progress(plan.migration_id)
        assert running is not None and running.status == "in_progress"
        assert manager.get_active_migrations() == [running]
        cancelled = await manager.cancel_migration(plan.migration_id)
        assert running.rollback == []
        registry.gate.set()
        return cancelled, await task

    cancelled, progress = asyncio.run(scenario())

    assert cancelled is True
    assert progress.status == "cancelled"
    assert progress.find_step("create-backup").status == "completed"
    assert progress.find_step("prepare-target").status == "pending"
    assert not registry.has_provider("target")
    assert seen == ["cancelled"]
    assert manager.get_migration_history() == [progress]
    assert progress.backup_id is not None
    assert [(action.action, action.outcome) for action in progress.rollback] == [
        ("restore", "succeeded"),
        ("stop", "skipped"),
        ("unregister", "skipped"),
    ]
    assert asyncio.run(manager.cancel_migration(progress.migration_id)) is False
