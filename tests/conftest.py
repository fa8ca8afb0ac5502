from pathlib import Path

import pytest

from clisage.catalog import CommandCatalog
from clisage.config import loader
from clisage.spec import ArgDecl, CommandSpec, FlagDecl, SpecNode
from clisage.values import ValueStore

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_spec() -> CommandSpec:
    return loader(FIXTURES / "sample.yaml")


@pytest.fixture
def catalog(sample_spec) -> CommandCatalog:
    return CommandCatalog(sample_spec)


@pytest.fixture
def store() -> ValueStore:
    return ValueStore()


@pytest.fixture
def deploy_spec() -> CommandSpec:
    """Global boolean `verbose`, count flag `-l` and `deploy <env>`."""
    deploy = SpecNode(
        name="deploy",
        help="Deploy the app",
        flags=(FlagDecl(name="message", long="message", takes_value=True),),
        args=(ArgDecl(name="env", choices=("dev", "prod")),),
    )
    root = SpecNode(
        name="app",
        flags=(
            FlagDecl(name="verbose", short="v", long="verbose", is_global=True),
            FlagDecl(name="level", short="l", long="level", count=True),
        ),
        children=(deploy,),
    )
    return CommandSpec(name="app", root=root)


@pytest.fixture
def deploy_catalog(deploy_spec) -> CommandCatalog:
    return CommandCatalog(deploy_spec)


@pytest.fixture
def shadow_catalog() -> CommandCatalog:
    """Global `--output` at the root, shadowed by a local `--output` on `mid`."""
    leaf = SpecNode(name="leaf", help="Innermost command")
    mid = SpecNode(
        name="mid",
        help="Declares its own output",
        flags=(FlagDecl(name="output", long="output", takes_value=True),),
        children=(leaf,),
    )
    root = SpecNode(
        name="app",
        flags=(
            FlagDecl(name="output", long="output", takes_value=True, is_global=True),
        ),
        children=(mid,),
    )
    return CommandCatalog(CommandSpec(name="app", root=root))
