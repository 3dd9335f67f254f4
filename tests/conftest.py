"""
Pytest configuration and fixtures for lanehub tests.
"""

import sys
from pathlib import Path

import pytest

# Add the repository root to path for imports
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from lanehub.assembly import AliasCatalog, ContextAssembler, LanePlanner
from lanehub.config.schemas import AppSettings, TableIds
from lanehub.events import ConnectionRegistry, EventBus
from lanehub.integrations import MemoryRecordStore

TABLES = TableIds()


@pytest.fixture(scope="session")
def catalog():
    """The bundled alias catalog."""
    return AliasCatalog.default()


@pytest.fixture
def planner(catalog):
    return LanePlanner(catalog)


@pytest.fixture
def tables():
    return TABLES


@pytest.fixture
def primary_fields():
    """Primary record fields: branch A on, only A1.1 linked."""
    fields = {
        "Name": "Spring launch post",
        "Workflow": ["recWF1"],
        "Entity": ["recENT1"],
        "Content Type": ["recCT1"],
        "Tools": ["recTOOL1", "recTOOL2"],
        "Branch A": True,
        "WF - A1.1": ["recPROMPT1"],
        "Whats Your Goal?": "Announce the spring release",
        "Target Audience": "Developers",
        "Brief": "Short and upbeat",
        "Tags": ["launch", "spring"],
        "Brand Knowledge Base": "<brand>Acme</brand>",
        "Marketing KB": "<marketing>Q2</marketing>",
        "Audience XML": "<audience>devs</audience>",
        "Personas": ["Backend engineer"],
        "Make Webhook URL": "https://hook.example.com/run",
    }
    for lane in "BCDEFGHIJ":
        fields[f"Branch {lane}"] = False
    return fields


@pytest.fixture
def store(primary_fields):
    """In-memory store seeded with the rec123 scenario."""
    store = MemoryRecordStore()
    store.add(TABLES.initiator, "rec123", primary_fields)
    store.add(TABLES.workflows, "recWF1", {
        "Name": "Blog Workflow",
        "Description": "Long-form blog pipeline",
        "AI Platform": "anthropic",
        "Model": "claude-3-5-sonnet",
        "Rules (JSON)": '[{"type": "tone", "value": "friendly"}]',
    })
    store.add(TABLES.entities, "recENT1", {
        "Name": "Acme",
        "App ID": "app-acme",
        "Capabilities (JSON)": '["blog", "social"]',
        "Links (JSON)": '[{"title": "Docs", "url": "https://docs.acme.test"}]',
        "Tags": ["b2b"],
        "Brand Knowledge Base": "B" * 600,
        "Audience Knowledge Base": "A" * 40,
    })
    store.add(TABLES.content_types, "recCT1", {
        "Name": "Blog Article",
        "Schema Version": "2.0.0",
        "Destination Table": "Blog Posts",
        "Fields Schema (JSON)": '[{"name": "title"}, {"name": "body"}]',
        "Validators (JSON)": '[{"name": "max_words", "value": 1200}]',
    })
    store.add(TABLES.tools, "recTOOL1", {"Name": "Google Search", "API Endpoint": "https://search.test"})
    store.add(TABLES.tools, "recTOOL2", {"Name": "Image Gen"})
    return store


@pytest.fixture
def assembler(store, catalog):
    return ContextAssembler(store, tables=TABLES, catalog=catalog)


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def bus(registry):
    return EventBus(registry)


@pytest.fixture
def settings():
    """Settings with no Airtable credentials and a fast heartbeat."""
    return AppSettings(heartbeat_interval=0.05, engine_webhook_url="https://engine.example.com/hook")
