import pytest
from textwrap import dedent

from macrocss.macrocss_datatypes import Scalar, get_variable, set_variable
from macrocss.macrocss_interpreter import Evaluator
from macrocss.macrocss_nodes import AtRule, Declaration, Root, Rule
from macrocss.macrocss_parser import parse
from macrocss.macrocss_printer import Printer
from macrocss.macrocss_runtime import Options, Processor, Result


def run(src: str, **options):
    res = Processor(Options.from_mapping(options)).process(dedent(src))
    assert res.status == 'success', res.error_message
    return res


def css(*lines: str) -> str:
    return "\n".join(lines) + "\n"


# --- Declarations, rules, at-rules ---

def test_variable_declaration_is_removed_and_used():
    res = run("""
    $color: red;
    a { color: $color; }
    """)
    assert res.value == css("a {", "  color: red;", "}")
    assert res.warnings == []

def test_variable_value_is_interpolated_before_storage():
    res = run("""
    $base: 4px;
    $double: $base $base;
    a { margin: $double; }
    """)
    assert res.value == css("a {", "  margin: 4px 4px;", "}")

def test_property_and_selector_interpolation():
    res = run("""
    $side: left;
    $name: card;
    .#{$name}-box { margin-#{$side}: 0; }
    """)
    assert res.value == css(".card-box {", "  margin-left: 0;", "}")

def test_media_and_keyframes_params_interpolated():
    res = run("""
    $bp: 600px;
    $anim: spin;
    @media (min-width: $bp) { a { w: 1; } }
    @-webkit-keyframes $anim { from { a: b; } }
    @keyframes $anim { to { a: c; } }
    """)
    assert res.value == css(
        "@media (min-width: 600px) {",
        "  a {",
        "    w: 1;",
        "  }",
        "}",
        "@-webkit-keyframes spin {",
        "  from {",
        "    a: b;",
        "  }",
        "}",
        "@keyframes spin {",
        "  to {",
        "    a: c;",
        "  }",
        "}",
    )

def test_other_at_rules_pass_through_untouched():
    res = run("""
    @import "$file";
    @supports ($x: y) { a { b: c; } }
    """)
    assert res.value == css(
        '@import "$file";',
        "@supports ($x: y) {",
        "  a {",
        "    b: c;",
        "  }",
        "}",
    )
    assert res.warnings == []

def test_unresolved_reference_warns_once_and_keeps_text():
    res = run("a { color: $missing; }")
    assert res.value == css("a {", "  color: $missing;", "}")
    assert len(res.warnings) == 1
    assert res.warnings[0].text == 'Could not resolve variable "$missing" within "$missing"'
    assert isinstance(res.warnings[0].node, Declaration)

def test_unresolved_warning_can_be_disabled():
    res = run("a { color: $missing; }", warn_of_unresolved=False)
    assert res.value == css("a {", "  color: $missing;", "}")
    assert res.warnings == []

def test_option_variables_installed_on_root():
    res = run("a { color: $brand; width: $w; }", variables={"brand": "#f00", "w": 10})
    assert res.value == css("a {", "  color: #f00;", "  width: 10;", "}")

def test_default_assignment_keeps_first():
    res = run("""
    $x: 1 !default;
    $x: 2 !default;
    a { w: $x; }
    """)
    assert res.value == css("a {", "  w: 1;", "}")

def test_default_does_not_override_option_variable():
    res = run("""
    $theme: light !default;
    a { t: $theme; }
    """, variables={"theme": "dark"})
    assert res.value == css("a {", "  t: dark;", "}")


# --- Scope isolation ---

def test_nested_declaration_does_not_leak():
    res = run("""
    $x: outer;
    .before { color: $x; }
    .a { $x: inner; color: $x; }
    .b { color: $x; }
    """)
    assert res.value == css(
        ".before {", "  color: outer;", "}",
        ".a {", "  color: inner;", "}",
        ".b {", "  color: outer;", "}",
    )

def test_later_declaration_visible_to_following_siblings_only():
    res = run("""
    a { w: $x; }
    $x: 1;
    b { w: $x; }
    """, warn_of_unresolved=False)
    assert res.value == css("a {", "  w: $x;", "}", "b {", "  w: 1;", "}")


# --- @for ---

@pytest.mark.parametrize("params, expected", [
    ("from 1 to 3", ["1", "2", "3"]),
    ("from 3 to 1", ["3", "2", "1"]),
    ("from 1 to 6 by 2", ["1", "3", "5"]),
    ("from 5 to 1 by -2", ["5", "3", "1"]),
    ("from 1 to 5 by -2", ["1", "3", "5"]),
    ("from 0 to 1 by 0.5", ["0", "0.5", "1"]),
    ("from 2 to 2", ["2"]),
    ("from 1 to 2 by 0", ["1", "2"]),
])
def test_for_iterations(params, expected):
    res = run(f"@for $i {params} {{ .m-$i {{ w: $i; }} }}")
    rules = [node for node in res.root.nodes]
    assert [rule.selector for rule in rules] == [f".m-{n}" for n in expected]
    assert [rule.nodes[0].value for rule in rules] == expected

def test_for_iteration_count_formula():
    start, end, step = 2, 17, 4
    res = run(f"@for $i from {start} to {end} by {step} {{ a: $i; }}")
    assert len(res.root.nodes) == (end - start) // step + 1

def test_for_bounds_from_variables():
    res = run("""
    $n: 3;
    $s: 1;
    @for $i from $s to $n { w-$i: $i; }
    """)
    assert res.value == css("w-1: 1;", "w-2: 2;", "w-3: 3;")

def test_for_body_declarations_do_not_leak():
    res = run("""
    @for $i from 1 to 2 {
      $y: $i;
      .r-$y { w: $y; }
    }
    .after { w: $y; }
    """)
    assert res.value == css(
        ".r-1 {", "  w: 1;", "}",
        ".r-2 {", "  w: 2;", "}",
        ".after {", "  w: $y;", "}",
    )
    assert len(res.warnings) == 1

def test_for_malformed_bounds_produce_nothing():
    res = run("""
    @for $i from a to 3 { x: $i; }
    b { c: d; }
    """)
    assert res.value == css("b {", "  c: d;", "}")
    assert [w.text for w in res.warnings] == ['Malformed @for parameters "$i from a to 3"']

def test_for_malformed_not_reported_when_disabled():
    res = run("@for $i from 1 { x: $i; }", warn_of_malformed=False)
    assert res.value == ""
    assert res.warnings == []

@pytest.mark.parametrize("params", [
    "from 1e999 to 1e999",
    "from 1 to 1e999",
    "from -1e999 to 1",
], ids=["both_infinite", "infinite_end", "infinite_start"])
def test_for_infinite_bounds_are_malformed(params):
    res = run(f"@for $i {params} {{ n: $i; }}\nb {{ c: d; }}")
    assert res.value == css("b {", "  c: d;", "}")
    assert [w.text for w in res.warnings] == [f'Malformed @for parameters "$i {params}"']

def test_for_infinite_step_falls_back_to_one():
    res = run("@for $i from 1 to 3 by 1e999 { n: $i; }")
    assert res.value == css("n: 1;", "n: 2;", "n: 3;")


# --- @each ---

def test_each_with_index():
    res = run("""
    @each $c $i in red, green {
      .c-$i { color: $c; }
    }
    """)
    assert res.value == css(
        ".c-0 {", "  color: red;", "}",
        ".c-1 {", "  color: green;", "}",
    )

def test_each_over_variable_list():
    res = run("""
    $list: a, b, c;
    @each $x in $list { n: $x; }
    """)
    assert res.value == css("n: a;", "n: b;", "n: c;")

def test_each_nested_arrays_bind_arrays():
    res = run("@each $pair in (a, 1), (b, 2) { p: $pair; }")
    assert res.value == css("p: a, 1;", "p: b, 2;")

def test_each_empty_array_produces_nothing():
    res = run("@each $x in () { n: $x; }")
    assert res.value == ""
    assert res.warnings == []

@pytest.mark.parametrize("src, options", [
    ("$list: ;\n@each $x in $list { n: $x; }", {}),
    ("@each $x in $e { n: $x; }", {"variables": {"e": ""}}),
    ("@each $x in #{$e} { n: $x; }", {"variables": {"e": ""}}),
], ids=["declared_blank", "option_blank", "interpolated_blank"])
def test_each_over_blank_value_produces_nothing(src, options):
    res = run(src, **options)
    assert res.value == ""
    assert res.warnings == []

def test_each_single_scalar_iterates_once():
    res = run("@each $x in red { n: $x; }")
    assert res.value == css("n: red;")

def test_each_without_in_is_malformed():
    res = run("@each $x { n: $x; }")
    assert res.value == ""
    assert [w.text for w in res.warnings] == ['Malformed @each parameters "$x"']

def test_each_iteration_count_and_indexes():
    res = run("@each $v $k in q, r, s, t { i: $k; }")
    assert [node.value for node in res.root.nodes] == ["0", "1", "2", "3"]


# --- @if / @else ---

def test_if_true_keeps_if_and_drops_else():
    res = run("a { @if 2 > 1 { color: red; } @else { color: blue; } }")
    assert res.value == css("a {", "  color: red;", "}")

def test_if_false_takes_else():
    res = run("a { @if 2 > 3 { color: red; } @else { color: blue; } }")
    assert res.value == css("a {", "  color: blue;", "}")

def test_if_false_without_else_produces_nothing():
    res = run("a { @if 1 == 2 { color: red; } top: 0; }")
    assert res.value == css("a {", "  top: 0;", "}")

def test_discarded_else_is_not_processed():
    res = run("@if 1 == 1 { a: b; } @else { c: $nope; }")
    assert res.value == css("a: b;")
    assert res.warnings == []

def test_if_string_equality():
    res = run("""
    $mode: dark;
    @if $mode == dark { bg: black; }
    @if $mode != dark { bg: white; }
    """)
    assert res.value == css("bg: black;")

def test_if_non_numeric_ordering_is_reported_and_false():
    res = run("@if a < b { color: red; } @else { color: blue; }")
    assert res.value == css("color: blue;")
    assert len(res.warnings) == 1
    assert res.warnings[0].text.startswith("@if a < b: Cannot order non-numeric operands")

def test_if_wrong_token_count_is_malformed():
    res = run("@if $x { color: red; }")
    assert res.value == ""
    assert [w.text for w in res.warnings] == ['Malformed @if parameters "$x"']

def test_stray_else_passes_through():
    res = run("a { @else { color: blue; } }")
    assert res.value == css("a {", "  @else {", "    color: blue;", "  }", "}")

def test_if_inside_for_uses_loop_variable():
    res = run("""
    @for $i from 1 to 3 {
      @if $i == 2 { .two { a: b; } }
      @else { .other-#{$i} { a: b; } }
    }
    """)
    assert [rule.selector for rule in res.root.nodes] == [".other-1", ".two", ".other-3"]


# --- Nesting and idempotence ---

def test_nested_loops():
    res = run("""
    @each $c in a, b {
      @for $i from 1 to 2 {
        .#{$c}-#{$i} { x: y; }
      }
    }
    """)
    assert [rule.selector for rule in res.root.nodes] == [".a-1", ".a-2", ".b-1", ".b-2"]

def test_loop_inside_rule_splices_in_place():
    res = run("a { first: 1; @for $i from 1 to 2 { n: $i; } last: 2; }")
    assert res.value == css("a {", "  first: 1;", "  n: 1;", "  n: 2;", "  last: 2;", "}")

def test_transform_is_idempotent_on_resolved_output():
    once = run("""
    $c: red;
    @each $x in a, b { .#{$x} { color: $c; } }
    """).value
    twice = run(once).value
    assert twice == once


# --- Driving the evaluator on a hand-built tree ---

def test_evaluator_on_built_tree():
    root = Root()
    rule = Rule(".a")
    rule.append(Declaration("$w", "2px"), Declaration("width", "$w"))
    loop = AtRule("for", "$i from 1 to 2")
    loop.append(Declaration("n", "$i"))
    root.append(rule, loop)

    result = Result(root)
    Evaluator(result).walk(root)

    assert Printer().pformat(root) == css(".a {", "  width: 2px;", "}", "n: 1;", "n: 2;")
    assert get_variable(rule, "w") == Scalar("2px")
    assert loop.parent is None
    assert result.messages == []

def test_clone_does_not_share_scope():
    root = Root()
    loop = AtRule("each", "$x in a, b")
    loop.append(Declaration("n", "$x"))
    root.append(loop)
    set_variable(loop, "keep", "1")
    clone = loop.clone(parent=root)
    set_variable(clone, "keep", "2")
    assert get_variable(loop, "keep") == Scalar("1")
    assert clone.scope is not loop.scope
    assert clone.scope.owner is clone
