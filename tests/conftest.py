"""Shared test fixtures for archrules.

The demo catalog mirrors a small ASP.NET-style CRUD application: a controller,
a service with its interfaces, a generic repository, and a model.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from archrules.catalog.catalog import TypeCatalog
from archrules.catalog.model import Member, make_type, parse_type_ref

if TYPE_CHECKING:
    from pathlib import Path

MVC = "Microsoft.AspNetCore.Mvc"
SERVICES = "Architecture.Services"
REPOSITORIES = "Architecture.Repositories"

DEMO_SNAPSHOT_YAML = """\
version: 1
assembly: Architecture
types:
  - full_name: Architecture.Controllers.ItemController
    kind: class
    base: Microsoft.AspNetCore.Mvc.ControllerBase
    annotations:
      - Microsoft.AspNetCore.Mvc.ApiControllerAttribute
      - Microsoft.AspNetCore.Mvc.RouteAttribute
    members:
      - name: _itemService
        kind: field
        types: [Architecture.Services.Interfaces.IItemService]
  - full_name: Architecture.Services.Interfaces.IItemService
    kind: interface
  - full_name: Architecture.Services.Interfaces.INewService
    kind: interface
  - full_name: Architecture.Services.ItemService
    kind: class
    interfaces:
      - Architecture.Services.Interfaces.IItemService
      - Architecture.Services.Interfaces.INewService
    members:
      - name: _repository
        kind: field
        types: [Architecture.Repositories.Interfaces.IItemRepository]
      - name: .ctor
        kind: constructor
        types: [Architecture.Repositories.Interfaces.IItemRepository]
  - full_name: Architecture.Repositories.Interfaces.IGenericRepository
    kind: interface
    generic_parameters: [T]
  - full_name: Architecture.Repositories.Interfaces.IItemRepository
    kind: interface
  - full_name: Architecture.Repositories.GenericRepository
    kind: generic-definition
    generic_parameters: [T]
    interfaces: ["Architecture.Repositories.Interfaces.IGenericRepository<T>"]
  - full_name: Architecture.Repositories.ItemRepository
    kind: class
    base: "Architecture.Repositories.GenericRepository<Architecture.Repositories.ItemRepository>"
    interfaces: [Architecture.Repositories.Interfaces.IItemRepository]
    members:
      - { name: .ctor, kind: constructor }
  - full_name: Architecture.Models.Item
    kind: class
    members: [Id, Name, Description]
"""

DEMO_RULES_YAML = """\
version: 1
rules:
  - name: controllers-layering
    description: Controllers depend on services and never on repositories
    that: { reside_in_namespace: Architecture.Controllers }
    should:
      all:
        - have_dependency_on: Architecture.Services
        - not_have_dependency_on: Architecture.Repositories
  - name: controller-names
    that: { reside_in_namespace: Architecture.Controllers }
    should: { have_name_ending_with: Controller }
  - name: services-pair-interfaces
    that:
      all:
        - reside_in_namespace: Architecture.Services
        - are_classes: true
    should: { implement_same_name_interface: true }
"""


def build_demo_catalog() -> TypeCatalog:
    """Build the demo application catalog through the Python API."""
    return TypeCatalog(
        [
            make_type(
                "Architecture.Controllers.ItemController",
                base=f"{MVC}.ControllerBase",
                annotations=[f"{MVC}.ApiControllerAttribute", f"{MVC}.RouteAttribute"],
                members=[
                    Member(
                        "_itemService",
                        kind="field",
                        type_refs=(parse_type_ref(f"{SERVICES}.Interfaces.IItemService"),),
                    )
                ],
            ),
            make_type("Architecture.Services.Interfaces.IItemService", kind="interface"),
            make_type("Architecture.Services.Interfaces.INewService", kind="interface"),
            make_type(
                "Architecture.Services.ItemService",
                interfaces=[
                    "Architecture.Services.Interfaces.IItemService",
                    "Architecture.Services.Interfaces.INewService",
                ],
                members=[
                    Member(
                        "_repository",
                        kind="field",
                        type_refs=(parse_type_ref(f"{REPOSITORIES}.Interfaces.IItemRepository"),),
                    ),
                    Member(
                        ".ctor",
                        kind="constructor",
                        type_refs=(parse_type_ref(f"{REPOSITORIES}.Interfaces.IItemRepository"),),
                    ),
                ],
            ),
            make_type(
                "Architecture.Repositories.Interfaces.IGenericRepository",
                kind="interface",
                generic_parameters=["T"],
            ),
            make_type("Architecture.Repositories.Interfaces.IItemRepository", kind="interface"),
            make_type(
                "Architecture.Repositories.GenericRepository",
                generic_parameters=["T"],
                interfaces=["Architecture.Repositories.Interfaces.IGenericRepository<T>"],
            ),
            make_type(
                "Architecture.Repositories.ItemRepository",
                base=f"{REPOSITORIES}.GenericRepository<{REPOSITORIES}.ItemRepository>",
                interfaces=["Architecture.Repositories.Interfaces.IItemRepository"],
                members=[Member(".ctor", kind="constructor")],
            ),
            make_type("Architecture.Models.Item", members=["Id", "Name", "Description"]),
        ],
        assembly="Architecture",
    )


@pytest.fixture()
def demo_catalog() -> TypeCatalog:
    return build_demo_catalog()


@pytest.fixture()
def tmp_project(tmp_path: Path) -> Path:
    """Create a project with ``.archrules/catalog.yml`` and ``.archrules/rules.yml``."""
    config_dir = tmp_path / ".archrules"
    config_dir.mkdir()
    (config_dir / "catalog.yml").write_text(DEMO_SNAPSHOT_YAML, encoding="utf-8")
    (config_dir / "rules.yml").write_text(DEMO_RULES_YAML, encoding="utf-8")
    return tmp_path
