import string

from distshrink.mangle.allocator import allocate
from distshrink.mangle.model import Category, Identifier, RenameMap


def _records(**counts):
    return [Identifier(Category.CLASS, name.replace("_", "-"), usage_count=count) for name, count in counts.items()]


def test_most_used_name_gets_shortest_free_name():
    records = _records(longClassName=5, other_name=9)
    renames = allocate(Category.CLASS, records, reserved={"a"})
    assert dict(renames) == {"other-name": "b", "longClassName": "c"}


def test_reserved_records_are_not_renamed():
    records = [
        Identifier(Category.CLASS, "keepThisName", usage_count=10, is_reserved=True),
        Identifier(Category.CLASS, "renameThis", usage_count=1),
    ]
    renames = allocate(Category.CLASS, records)
    assert dict(renames) == {"renameThis": "a"}


def test_candidate_not_shorter_stays_available():
    records = _records(xy=10, zzzz=1)
    reserved = set(string.ascii_letters)
    renames = allocate(Category.CLASS, records, reserved)
    assert dict(renames) == {"zzzz": "aa"}


def test_injective_and_never_reserved():
    records = _records(**{f"name{i:03d}": i for i in range(200)})
    reserved = {"a", "c", "Q", "ab"}
    renames = allocate(Category.CLASS, records, reserved)
    shorts = list(renames.values())
    assert len(shorts) == len(set(shorts)) == 200
    assert not reserved & set(shorts)
    assert not {r.canonical for r in records} & set(shorts)
    for name, short in renames.items():
        assert len(short) < len(name)


def test_render_applies_to_custom_properties():
    records = [Identifier(Category.CUSTOM_PROPERTY, "--brand-color", usage_count=2)]
    renames = allocate(Category.CUSTOM_PROPERTY, records, {"--a"}, render=lambda s: "--" + s)
    assert dict(renames) == {"--brand-color": "--b"}


def test_rename_map_is_read_only():
    renames = RenameMap(Category.ID, {"main": "a"})
    assert renames["main"] == "a"
    assert "main" in renames
    assert len(renames) == 1
    assert not RenameMap.empty(Category.ID)
