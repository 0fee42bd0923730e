from distshrink.mangle.harvest import combine, file_kind, scan_file
from distshrink.mangle.model import Category


def harvest_of(files, **kwargs):
    return combine([scan_file(path, text) for path, text in files.items()], **kwargs)


def records(harvest, category):
    return {record.canonical: record for record in harvest.records(category)}


def test_file_kind():
    assert file_kind("a/b.CSS") == "css"
    assert file_kind("chunk.mjs") == "js"
    assert file_kind("index.htm") == "html"
    assert file_kind("logo.svg") is None


def test_declared_but_unused_classes_are_reserved():
    harvest = harvest_of({
        "style.css": ".used{color:red}.unused{color:blue}",
        "index.html": '<div class="used"></div>',
    })
    classes = records(harvest, Category.CLASS)
    assert not classes["used"].is_reserved
    assert classes["used"].usage_count == 2
    assert classes["unused"].is_reserved
    assert {"used", "unused"} <= harvest.reserved_names(Category.CLASS)


def test_class_list_literal_counts_as_usage():
    harvest = harvest_of({
        "style.css": ".card{color:red}",
        "app.js": 'el.className = "card active";',
    })
    assert not records(harvest, Category.CLASS)["card"].is_reserved
    assert "active" in harvest.reserved_names(Category.CLASS)


def test_dotted_selector_literal_pins_class():
    harvest = harvest_of({
        "style.css": ".card{color:red}",
        "index.html": '<div class="card"></div>',
        "app.js": 'document.querySelector(".card > span")',
    })
    assert records(harvest, Category.CLASS)["card"].is_reserved


def test_partial_attribute_selector_pins_matching_classes():
    harvest = harvest_of({
        "style.css": '.btn-primary{color:red}[class^="btn"]{color:blue}',
        "index.html": '<a class="btn-primary"></a>',
    })
    assert records(harvest, Category.CLASS)["btn-primary"].is_reserved


def test_inline_handler_pins_names():
    harvest = harvest_of({
        "style.css": ".card{color:red}.open{color:blue}",
        "index.html": "<div class=\"card open\" onclick=\"this.classList.toggle('open')\"></div>",
    })
    classes = records(harvest, Category.CLASS)
    assert not classes["card"].is_reserved
    assert classes["open"].is_reserved


def test_id_usage_is_counted_across_file_types():
    harvest = harvest_of({
        "style.css": "#main{color:red}",
        "index.html": '<div id="main"></div>',
        "app.js": 'document.getElementById("main")',
    })
    main = records(harvest, Category.ID)["main"]
    assert main.usage_count == 3
    assert not main.is_reserved


def test_remote_fragment_pins_id():
    harvest = harvest_of({
        "style.css": "#sec{color:red}",
        "index.html": '<div id="sec"></div><a href="/page#sec">x</a>',
    })
    assert records(harvest, Category.ID)["sec"].is_reserved


def test_literal_that_could_be_class_or_id_pins_both():
    harvest = harvest_of({
        "style.css": ".card{color:red}#card{color:blue}",
        "index.html": '<div class="card" id="card"></div>',
        "app.js": 'toggle("card")',
    })
    assert records(harvest, Category.CLASS)["card"].is_reserved
    assert records(harvest, Category.ID)["card"].is_reserved


def test_custom_properties_respect_min_length():
    harvest = harvest_of({
        "style.css": ":root{--brand-color:red;--x:1}a{color:var(--brand-color)}",
    })
    properties = records(harvest, Category.CUSTOM_PROPERTY)
    assert list(properties) == ["--brand-color"]
    assert properties["--brand-color"].usage_count == 2
    assert {"--brand-color", "--x"} <= harvest.reserved_names(Category.CUSTOM_PROPERTY)


def test_scope_ids():
    harvest = harvest_of({
        "index.html": '<div class="a astro-cid-j7pv25f6"></div>',
        "style.css": ".a[data-astro-cid-j7pv25f6]{color:red}",
    })
    scope_ids = records(harvest, Category.SCOPE_ID)
    assert list(scope_ids) == ["j7pv25f6"]
    assert scope_ids["j7pv25f6"].usage_count == 2


def test_scan_order_does_not_matter():
    files = {
        "style.css": ".card{color:red}#main{color:blue}",
        "index.html": '<div class="card" id="main"></div>',
        "app.js": 'el.className = "card"; find("#main")',
    }
    scans = [scan_file(path, text) for path, text in files.items()]
    assert combine(scans) == combine(list(reversed(scans)))
