import pytest

from clisage.assembler import CommandAssembler, CommandPart, PartKind, format_flag
from clisage.exceptions import UnknownPathError
from clisage.spec import FlagDecl
from clisage.values import FlagValue, ValueStore


class Session:
    """Drives a store the way the controller does: visit, then mutate."""

    def __init__(self, catalog, bin_override=None):
        self.catalog = catalog
        self.store = ValueStore()
        self.assembler = CommandAssembler(catalog, self.store, bin_override)

    def visit(self, key):
        entry = self.catalog.entry(key)
        inherited = self.catalog.inherited_flags(entry.path)
        seed = {}
        for flag in inherited:
            value = self.assembler.resolve_global(entry.path, flag.name)
            if value is not None:
                seed[flag.name] = value
        self.store.ensure(entry.key, entry.node, inherited, seed)
        return entry.path


@pytest.fixture
def session(deploy_catalog):
    return Session(deploy_catalog)


def test_global_flag_then_argument(session):
    session.visit("")
    session.store.toggle("", "verbose")
    path = session.visit("deploy")
    session.store.set_arg("deploy", "env", "prod")
    assert session.assembler.display(path) == "app --verbose deploy prod"
    assert session.assembler.tokens(path) == ["app", "--verbose", "deploy", "prod"]


def test_descendant_override_wins(session):
    session.visit("")
    session.store.toggle("", "verbose")
    path = session.visit("deploy")
    assert session.store.flag("deploy", "verbose").value is True
    session.store.set_bool("deploy", "verbose", False)
    session.store.set_arg("deploy", "env", "prod")
    assert session.assembler.resolve_global(path, "verbose") == FlagValue.boolean(False)
    assert session.assembler.display(path) == "app deploy prod"


def test_global_emitted_once_right_after_binary(session):
    session.visit("")
    session.store.toggle("", "verbose")
    path = session.visit("deploy")
    session.store.set_text("deploy", "message", "ship it")
    display = session.assembler.display(path)
    assert display == 'app --verbose deploy --message "ship it"'
    assert display.count("--verbose") == 1
    tokens = session.assembler.tokens(path)
    assert tokens == ["app", "--verbose", "deploy", "--message", "ship it"]


def test_count_flag_renders_joined_short_form(session):
    session.visit("")
    for _ in range(3):
        session.store.increment("", "level")
    assert session.assembler.display(()) == "app -lll"
    assert session.assembler.tokens(()) == ["app", "-lll"]
    for _ in range(4):
        session.store.decrement("", "level")
    assert session.store.flag("", "level").value == 0
    assert session.assembler.display(()) == "app"


def test_inactive_flags_and_empty_args_are_omitted(catalog):
    session = Session(catalog)
    session.visit("")
    path = session.visit("run")
    session.store.set_text("run", "jobs", "")
    assert session.assembler.display(path) == "mycli run"
    assert session.assembler.tokens(path) == ["mycli", "run"]


def test_text_default_is_emitted(catalog):
    session = Session(catalog)
    session.visit("")
    path = session.visit("run")
    session.store.set_arg("run", "task", "build")
    session.store.toggle("run", "dry-run")
    assert session.assembler.tokens(path) == [
        "mycli",
        "run",
        "--jobs",
        "4",
        "--dry-run",
        "build",
    ]


def test_tokens_join_matches_display_without_whitespace(catalog):
    session = Session(catalog)
    session.visit("")
    session.store.toggle("", "quiet")
    session.store.cycle_choice("", "color", ("auto", "always", "never"))
    path = session.visit("deploy")
    session.store.toggle("deploy", "yes")
    session.store.set_text("deploy", "tag", "v2")
    session.store.set_arg("deploy", "environment", "staging")
    display = session.assembler.display(path)
    assert " ".join(session.assembler.tokens(path)) == display
    assert display == "mycli --quiet deploy --tag v2 --yes staging"


def test_hidden_flags_are_not_emitted(catalog):
    session = Session(catalog)
    session.visit("")
    path = session.visit("deploy")
    session.store.set_text("deploy", "token", "secret")
    assert "secret" not in session.assembler.tokens(path)


def test_only_current_node_flags_are_emitted(catalog):
    session = Session(catalog)
    session.visit("")
    session.store.cycle_choice("", "color", ("auto", "always", "never"))
    assert session.assembler.display(()) == "mycli --color auto"
    path = session.visit("init")
    assert session.assembler.display(path) == "mycli init"


def test_bin_override_is_split_into_tokens(deploy_catalog):
    session = Session(deploy_catalog, bin_override="  docker   compose ")
    session.visit("")
    assert session.assembler.binary == "docker   compose"
    assert session.assembler.tokens(()) == ["docker", "compose"]
    assert session.assembler.display(()) == "docker compose"


def test_arguments_are_not_escaped(deploy_catalog):
    session = Session(deploy_catalog)
    session.visit("")
    path = session.visit("deploy")
    session.store.set_arg("deploy", "env", "prod; rm -rf /")
    assert session.assembler.tokens(path)[-1] == "prod; rm -rf /"


def test_unvisited_path_raises(session):
    with pytest.raises(UnknownPathError):
        session.assembler.parts(("deploy",))


def test_format_flag_shapes():
    both = FlagDecl(name="output", short="o", long="output", takes_value=True)
    assert format_flag(both, FlagValue.text(""), PartKind.FLAG) == []
    assert format_flag(both, FlagValue.text("a b"), PartKind.FLAG) == [
        CommandPart(PartKind.FLAG, "--output"),
        CommandPart(PartKind.VALUE, "a b"),
    ]
    short = FlagDecl(name="f", short="f")
    assert format_flag(short, FlagValue.boolean(True), PartKind.FLAG) == [
        CommandPart(PartKind.FLAG, "-f")
    ]
    long_count = FlagDecl(name="more", long="more", count=True)
    parts = format_flag(long_count, FlagValue.count(2), PartKind.FLAG)
    assert [part.text for part in parts] == ["--more", "--more"]


def test_part_display_quotes_values_only():
    assert CommandPart(PartKind.ARG, "two words").display == '"two words"'
    assert CommandPart(PartKind.SUBCOMMAND, "deploy").display == "deploy"


def test_local_flag_does_not_shadow_global_below_it(shadow_catalog):
    session = Session(shadow_catalog)
    session.visit("")
    session.store.set_text("", "output", "global.txt")
    mid = session.visit("mid")
    session.store.set_text("mid", "output", "mid-local.txt")
    assert session.assembler.display(mid) == "app mid --output mid-local.txt"
    leaf = session.visit("mid leaf")
    assert session.assembler.resolve_global(leaf, "output") == FlagValue.text(
        "global.txt"
    )
    assert session.assembler.display(leaf) == "app --output global.txt mid leaf"
