from distshrink.mangle.js import iter_literals, iter_plain_templates, rewrite_literals, tokenize
from distshrink.tokens import TokenKind, join_tokens


def kinds(tokens):
    return [(token.kind, token.text) for token in tokens]


def test_tokens_join_back_to_source():
    code = 'const a = "x"; // note\nlet b = `t${"y" + c}z`; /* done */'
    assert join_tokens(tokenize(code)) == code


def test_strings_and_comments():
    assert kinds(tokenize('f("a", \'b\') // c')) == [
        (TokenKind.CODE, "f("),
        (TokenKind.STRING, '"a"'),
        (TokenKind.CODE, ", "),
        (TokenKind.STRING, "'b'"),
        (TokenKind.CODE, ") "),
        (TokenKind.COMMENT, "// c"),
    ]


def test_template_with_hole():
    assert kinds(tokenize("x = `a${b}c`;")) == [
        (TokenKind.CODE, "x = "),
        (TokenKind.OPERATOR, "`"),
        (TokenKind.TEMPLATE_SEGMENT, "a"),
        (TokenKind.OPERATOR, "${"),
        (TokenKind.CODE, "b"),
        (TokenKind.OPERATOR, "}"),
        (TokenKind.TEMPLATE_SEGMENT, "c"),
        (TokenKind.OPERATOR, "`"),
        (TokenKind.CODE, ";"),
    ]


def test_empty_template_has_a_segment():
    assert kinds(tokenize("``")) == [
        (TokenKind.OPERATOR, "`"),
        (TokenKind.TEMPLATE_SEGMENT, ""),
        (TokenKind.OPERATOR, "`"),
    ]


def test_regex_literal_is_code():
    tokens = tokenize('ok = /"/.test(s); y = "z"')
    assert kinds(tokens) == [
        (TokenKind.CODE, 'ok = /"/.test(s); y = '),
        (TokenKind.STRING, '"z"'),
    ]


def test_division_is_not_a_regex():
    tokens = tokenize('a = b / c / "d"')
    assert [token.kind for token in tokens] == [TokenKind.CODE, TokenKind.STRING]


def test_plain_templates():
    tokens = tokenize("a = `x`; b = `y${z}`;")
    assert [tokens[k].text for k in iter_plain_templates(tokens)] == ["x"]


def test_iter_literals():
    code = "el.className = 'card active'; html = `<p>${name}</p>`;"
    assert list(iter_literals(code)) == ["card active", "<p>", "</p>"]


def test_rewrite_literals_only_touches_content():
    code = "card('card'); // card\nx = `card`"
    rewritten = rewrite_literals(code, lambda value: value.replace("card", "a"))
    assert rewritten == "card('a'); // card\nx = `a`"


def test_division_after_postfix_and_brackets():
    for code in ('var a=b++/2,c="card";', 'var a=b--/2,c="card";', 'x=f(x)/2,c="card";', 'x=a[0]/2,c="card";'):
        tokens = tokenize(code)
        assert [token.text for token in tokens if token.kind is TokenKind.STRING] == ['"card"']
        assert join_tokens(tokens) == code


def test_regex_after_operator_still_skipped():
    tokens = tokenize('x = a + /"/.source; y = "z"')
    assert [token.text for token in tokens if token.kind is TokenKind.STRING] == ['"z"']
