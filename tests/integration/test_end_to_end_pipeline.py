"""
End-to-end integration tests for the complete tuplegen pipeline.

This module tests the complete workflow from annotated source text to the
rewritten text, across both expansion modes, multiple sites and files on
disk.
"""

import re

import pytest

from tuplegen import expand_file, expand_site, expand_source
from tuplegen.utils.exceptions import SourceExpansionError, UnsupportedConstructError

from conftest import GET_IMPL, HOOKS_IMPL, NOTIFY_TRAIT, parse_sites, write_source


@pytest.mark.integration
class TestEndToEndPipeline:
    """Test complete end-to-end pipeline functionality."""

    def test_full_automatic_source(self, tuplegen_config):
        """Test the complete output for an annotated trait."""
        result = expand_source(NOTIFY_TRAIT, config=tuplegen_config)

        assert result.changed
        assert result.output == (
            "trait Notify {\n"
            "    fn notify(&self);\n"
            "}\n"
            "\n"
            "#[allow(unused)]\n"
            "impl Notify for () {\n"
            "    fn notify(&self) {}\n"
            "}\n"
            "\n"
            "#[allow(unused)]\n"
            "impl<T0: Notify> Notify for (T0,) {\n"
            "    fn notify(&self) {\n"
            "        self.0.notify();\n"
            "    }\n"
            "}\n"
            "\n"
            "#[allow(unused)]\n"
            "impl<T0: Notify, T1: Notify> Notify for (T0, T1) {\n"
            "    fn notify(&self) {\n"
            "        self.0.notify();\n"
            "        self.1.notify();\n"
            "    }\n"
            "}\n"
        )

    def test_semi_automatic_source_has_no_preamble(self, tuplegen_config):
        """Test that the annotated impl itself is replaced."""
        result = expand_source(GET_IMPL, config=tuplegen_config)

        assert result.output.startswith("#[allow(unused)]\nimpl Get for () {")
        assert "Tuple" not in result.output
        assert "for_tuples" not in result.output
        assert result.expansions[0].preamble is None

    @pytest.mark.parametrize("degree", [1, 2, 5, 16])
    def test_one_declaration_per_arity(self, tuplegen_config, degree):
        """Test that exactly N + 1 declarations are produced."""
        source = NOTIFY_TRAIT.replace("tuple_impl(2)", f"tuple_impl({degree})")
        (expansion,) = expand_source(source, config=tuplegen_config).expansions

        assert expansion.arities == list(range(degree + 1))
        last = expansion.declarations[-1]
        assert f"self.{degree - 1}.notify();" in last.text
        assert f"T{degree - 1}: Notify" in last.text

    def test_index_alignment(self, tuplegen_config):
        """Test that element i is always paired with T<i> and self.<i>."""
        (expansion,) = expand_source(GET_IMPL, config=tuplegen_config).expansions
        text = expansion.declarations[3].text

        assert "type Out = (T0::Out, T1::Out, T2::Out);" in text
        assert "(self.0.get(), self.1.get(), self.2.get())" in text
        for declaration in expansion.declarations:
            indices = [int(i) for i in re.findall(r"self\.(\d+)\.get\(\)", declaration.text)]
            assert indices == list(range(declaration.arity))

    def test_hooks_zero_arity(self, tuplegen_config):
        """Test that every directive degrades cleanly for the empty tuple."""
        (expansion,) = expand_source(HOOKS_IMPL, config=tuplegen_config).expansions
        unit = expansion.declarations[0].text

        assert "impl Hooks for () {" in unit
        assert "where" not in unit
        assert "const WEIGHT: u32 = 0;" in unit
        assert "vec![]" in unit
        assert "on_start(round)" not in unit

    def test_comma_repetitions_stay_well_formed(self, tuplegen_config):
        """Test comma repetitions in value position and inside call arguments."""
        source = (
            "#[tuple_impl(1)]\n"
            "impl Visit for Tuple {\n"
            "    fn f(&self) {\n"
            "        let all = for_tuples!( #( Tuple.g() ),* );\n"
            "        call(for_tuples!( #( Tuple.g() ),* ), for_tuples!( #( Tuple.h() ),* ));\n"
            "        call(1, for_tuples!( #( Tuple.g() ),* ), 2);\n"
            "    }\n"
            "}\n"
        )
        (expansion,) = expand_source(source, config=tuplegen_config).expansions
        unit, single = [declaration.text for declaration in expansion.declarations]

        assert "let all = ();" in unit
        assert "call();" in unit
        assert "call(1, 2);" in unit
        assert "let all = (self.0.g(),);" in single
        assert "call(self.0.g(), self.0.h());" in single
        assert "call(1, self.0.g(), 2);" in single

    def test_unannotated_source_is_unchanged(self, tuplegen_config):
        source = "trait Plain {\n    fn plain(&self);\n}\n"
        result = expand_source(source, config=tuplegen_config)

        assert not result.changed
        assert result.output == source

    def test_surrounding_text_is_preserved(self, tuplegen_config):
        source = "use std::fmt;\n\n" + NOTIFY_TRAIT + "\nfn main() {}\n"
        result = expand_source(source, config=tuplegen_config)

        assert result.output.startswith("use std::fmt;\n\ntrait Notify {")
        assert result.output.endswith("}\n\nfn main() {}\n")

    def test_nested_site(self, tuplegen_config):
        """Test that generated declarations follow the site's indentation."""
        source = (
            "mod inner {\n"
            "    #[tuple_impl(1)]\n"
            "    trait Inner {\n"
            "        fn run(&self);\n"
            "    }\n"
            "}\n"
        )
        assert expand_source(source, config=tuplegen_config).output == (
            "mod inner {\n"
            "    trait Inner {\n"
            "        fn run(&self);\n"
            "    }\n"
            "\n"
            "    #[allow(unused)]\n"
            "    impl Inner for () {\n"
            "        fn run(&self) {}\n"
            "    }\n"
            "\n"
            "    #[allow(unused)]\n"
            "    impl<T0: Inner> Inner for (T0,) {\n"
            "        fn run(&self) {\n"
            "            self.0.run();\n"
            "        }\n"
            "    }\n"
            "}\n"
        )


@pytest.mark.integration
class TestMultipleSites:
    """Test independence of annotated sites."""

    def test_site_order_does_not_matter(self, tuplegen_config):
        """Test that each site's output is independent of its neighbours."""
        forward = expand_source(NOTIFY_TRAIT + "\n" + GET_IMPL, config=tuplegen_config)
        backward = expand_source(GET_IMPL + "\n" + NOTIFY_TRAIT, config=tuplegen_config)

        notify_a, get_a = [e.render() for e in forward.expansions]
        get_b, notify_b = [e.render() for e in backward.expansions]
        assert notify_a == notify_b
        assert get_a == get_b
        assert [len(e.declarations) for e in forward.expansions] == [3, 4]

    def test_site_expansion_matches_source_expansion(self, tuplegen_config):
        source = NOTIFY_TRAIT + "\n" + HOOKS_IMPL
        result = expand_source(source, config=tuplegen_config)
        for site, expansion in zip(parse_sites(source), result.expansions):
            assert expand_site(site, tuplegen_config).render() == expansion.render()

    def test_failing_site_produces_no_output(self, tuplegen_config):
        """Test all-or-nothing behavior when one site fails."""
        bad = "#[tuple_impl(2)]\ntrait Bad {\n    const MAX: u32;\n}\n"
        with pytest.raises(SourceExpansionError) as exc_info:
            expand_source(NOTIFY_TRAIT + "\n" + bad, config=tuplegen_config, filename="lib.rs")

        (error,) = exc_info.value.errors
        assert isinstance(error, UnsupportedConstructError)
        assert error.construct == "associated const MAX"
        assert error.location == "lib.rs:8:5"


@pytest.mark.integration
class TestFiles:
    """Test expansion of files on disk."""

    def test_expand_file_writes_output(self, tmp_path, tuplegen_config):
        path = write_source(tmp_path, "lib.rs", HOOKS_IMPL)
        output = tmp_path / "out.rs"

        result = expand_file(path, output=output, config=tuplegen_config)

        assert result.filename == str(path)
        assert output.read_text(encoding="utf-8") == result.output
        assert path.read_text(encoding="utf-8") == HOOKS_IMPL

    def test_expand_file_without_output(self, tmp_path, tuplegen_config):
        path = write_source(tmp_path, "lib.rs", NOTIFY_TRAIT)

        result = expand_file(path, config=tuplegen_config)

        assert result.changed
        assert sorted(p.name for p in tmp_path.iterdir()) == ["lib.rs"]
