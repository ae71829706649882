"""
Unit tests for the mode dispatcher and the expansion strategies.
"""

import pytest

from tuplegen.expand.degree import AnnotationConfig
from tuplegen.expand.emitter import TupleVariant
from tuplegen.expand.modes import (
    FULL_AUTOMATIC,
    SEMI_AUTOMATIC,
    ForwardedMethod,
    FullAutomaticStrategy,
    SemiAutomaticStrategy,
    dispatch,
)
from tuplegen.utils.config import TupleGenConfig
from tuplegen.utils.exceptions import (
    EmptyBodyOnZeroArityError,
    MalformedDirectiveError,
    UnsupportedConstructError,
)

from conftest import GET_IMPL, HOOKS_IMPL, NOTIFY_TRAIT, parse_site, validated_strategy


def render(source: str, arity: int, config=None) -> str:
    strategy = validated_strategy(source, config=config)
    return strategy.render(TupleVariant.of(arity, strategy.element_prefix))


class TestDispatch:
    """Test strategy selection."""

    def test_trait_is_full_automatic(self):
        strategy = dispatch(parse_site(NOTIFY_TRAIT), AnnotationConfig(2))
        assert isinstance(strategy, FullAutomaticStrategy)
        assert strategy.mode == FULL_AUTOMATIC

    def test_impl_is_semi_automatic(self):
        strategy = dispatch(parse_site(GET_IMPL), AnnotationConfig(3))
        assert isinstance(strategy, SemiAutomaticStrategy)
        assert strategy.mode == SEMI_AUTOMATIC

    def test_uses_global_config_by_default(self):
        strategy = dispatch(parse_site(NOTIFY_TRAIT), AnnotationConfig(2))
        assert strategy.expansion.directive_macro == "for_tuples"
        assert strategy.element_prefix == "T"


class TestFullAutomatic:
    """Test forwarding implementations generated from trait declarations."""

    def test_forwarding_at_arity_two(self):
        assert render(NOTIFY_TRAIT, 2) == (
            "#[allow(unused)]\n"
            "impl<T0: Notify, T1: Notify> Notify for (T0, T1) {\n"
            "    fn notify(&self) {\n"
            "        self.0.notify();\n"
            "        self.1.notify();\n"
            "    }\n"
            "}"
        )

    def test_empty_body_at_arity_zero(self):
        assert render(NOTIFY_TRAIT, 0) == (
            "#[allow(unused)]\n"
            "impl Notify for () {\n"
            "    fn notify(&self) {}\n"
            "}"
        )

    def test_single_element_tuple(self):
        assert "impl<T0: Notify> Notify for (T0,) {" in render(NOTIFY_TRAIT, 1)

    def test_preamble_keeps_trait_without_annotation(self):
        strategy = validated_strategy(NOTIFY_TRAIT)
        assert strategy.preamble() == "trait Notify {\n    fn notify(&self);\n}"

    def test_preamble_keeps_other_attributes(self):
        source = "#[cfg(test)]\n#[tuple_impl(1)]\npub trait A {\n    fn a(&self);\n}\n"
        strategy = validated_strategy(source, max_degree=1)
        assert strategy.preamble() == "#[cfg(test)]\npub trait A {\n    fn a(&self);\n}"

    def test_static_method_and_anonymous_parameters(self):
        source = (
            "#[tuple_impl(1)]\n"
            "trait Setup {\n"
            "    fn setup(config: &Config, _: u8);\n"
            "}\n"
        )
        assert render(source, 1) == (
            "#[allow(unused)]\n"
            "impl<T0: Setup> Setup for (T0,) {\n"
            "    fn setup(config: &Config, arg1: u8) {\n"
            "        T0::setup(config, arg1);\n"
            "    }\n"
            "}"
        )

    def test_generic_async_and_unsafe_methods(self):
        source = (
            "#[tuple_impl(2)]\n"
            "trait Io {\n"
            "    async fn run<'a, R: Read>(&'a self, r: R);\n"
            "    unsafe fn poke(&self);\n"
            "}\n"
        )
        output = render(source, 1)
        assert "self.0.run::<R>(r).await;" in output
        assert "unsafe { self.0.poke(); }" in output

    def test_trait_generics_and_where_clause(self):
        source = (
            "#[tuple_impl(2)]\n"
            "trait Visit<V: Visitor = Noop> where V: Clone {\n"
            "    fn visit(&self, v: &mut V);\n"
            "}\n"
        )
        output = render(source, 1)
        assert output.splitlines()[1] == (
            "impl<V: Visitor, T0: Visit<V>> Visit<V> for (T0,) where V: Clone {"
        )

    def test_default_methods_are_not_forwarded(self):
        source = (
            "#[tuple_impl(2)]\n"
            "trait Partial {\n"
            "    fn required(&self);\n"
            "    fn provided(&self) {}\n"
            "}\n"
        )
        strategy = validated_strategy(source)
        assert [method.name for method in strategy.methods] == ["required"]
        assert "provided" not in strategy.render(TupleVariant.of(2, "T"))

    def test_element_prefix_avoids_trait_generics(self):
        source = (
            "#[tuple_impl(2)]\n"
            "trait Pair<T0> {\n"
            "    fn pair(&self, x: T0);\n"
            "}\n"
        )
        strategy = validated_strategy(source)
        assert strategy.element_prefix == "T_"
        output = strategy.render(TupleVariant.of(1, strategy.element_prefix))
        assert "impl<T0, T_0: Pair<T0>> Pair<T0> for (T_0,) {" in output

    def test_unsafe_trait_without_methods(self):
        source = "#[tuple_impl(1)]\nunsafe trait Marker {}\n"
        assert render(source, 0) == "#[allow(unused)]\nunsafe impl Marker for () {}"

    def test_format_configuration(self):
        config = TupleGenConfig(data={
            "expansion": {"emit_allow_unused": False},
            "format": {"indent_size": 2},
        })
        assert render(NOTIFY_TRAIT, 1, config=config) == (
            "impl<T0: Notify> Notify for (T0,) {\n"
            "  fn notify(&self) {\n"
            "    self.0.notify();\n"
            "  }\n"
            "}"
        )

    def test_nested_site_keeps_indentation(self):
        source = (
            "mod inner {\n"
            "    #[tuple_impl(1)]\n"
            "    trait Inner {\n"
            "        fn run(&self);\n"
            "    }\n"
            "}\n"
        )
        assert render(source, 1) == (
            "#[allow(unused)]\n"
            "    impl<T0: Inner> Inner for (T0,) {\n"
            "        fn run(&self) {\n"
            "            self.0.run();\n"
            "        }\n"
            "    }"
        )


class TestFullAutomaticErrors:
    """Test constructs full-automatic mode refuses."""

    @pytest.mark.parametrize("item,construct", [
        ("type Item;", "associated type Item"),
        ("const MAX: u32;", "associated const MAX"),
        ("fn get(&self) -> u32;", "fn get"),
    ])
    def test_unsupported_items(self, item, construct):
        source = f"#[tuple_impl(2)]\ntrait Bad {{\n    fn ok(&self);\n    {item}\n}}\n"
        strategy = dispatch(parse_site(source), AnnotationConfig(2))
        with pytest.raises(UnsupportedConstructError) as exc_info:
            strategy.validate()
        assert exc_info.value.construct == construct
        assert exc_info.value.span.line == 4

    def test_directive_in_trait(self):
        source = "#[tuple_impl(2)]\ntrait Bad {\n    fn f(&self) { for_tuples!( #( Tuple.f(); )* ); }\n}\n"
        with pytest.raises(MalformedDirectiveError, match="implementation blocks"):
            validated_strategy(source)


class TestForwardedMethod:
    """Test rendering of single forwarding methods."""

    def test_call_shapes(self):
        method = ForwardedMethod(name="m", signature="fn m(&self, a: u8)", arguments=["a"])
        assert method.call(1, "T1") == "self.1.m(a);"

        static = ForwardedMethod(name="m", signature="fn m()", arguments=[], has_receiver=False)
        assert static.call(0, "T0") == "T0::m();"

    def test_render_without_elements(self):
        method = ForwardedMethod(name="m", signature="fn m(&self)", arguments=[])
        assert method.render(TupleVariant.of(0, "T"), "    ") == "fn m(&self) {}"


class TestSemiAutomatic:
    """Test expansion of annotated implementation blocks."""

    def test_get_at_arity_three(self):
        assert render(GET_IMPL, 3) == (
            "#[allow(unused)]\n"
            "impl<T0: Get, T1: Get, T2: Get> Get for (T0, T1, T2) {\n"
            "    type Out = (T0::Out, T1::Out, T2::Out);\n"
            "\n"
            "    fn get(&self) -> Self::Out {\n"
            "        (self.0.get(), self.1.get(), self.2.get())\n"
            "    }\n"
            "}"
        )

    def test_get_at_arity_zero(self):
        output = render(GET_IMPL, 0)
        assert "impl Get for () {" in output
        assert "type Out = ();" in output
        assert "        ()\n" in output

    def test_hooks_at_arity_two(self):
        assert render(HOOKS_IMPL, 2) == (
            "#[allow(unused)]\n"
            "impl<T0: Hooks, T1: Hooks> Hooks for (T0, T1) where T0: Clone, T1: Clone {\n"
            "    const WEIGHT: u32 = T0::WEIGHT + T1::WEIGHT;\n"
            "\n"
            "    fn on_start(&mut self, round: u32) {\n"
            "        self.0.on_start(round);\n"
            "        self.1.on_start(round);\n"
            "    }\n"
            "\n"
            "    fn describe() -> Vec<&'static str> {\n"
            "        vec![T0::NAME, T1::NAME]\n"
            "    }\n"
            "}"
        )

    def test_hooks_at_arity_zero(self):
        assert render(HOOKS_IMPL, 0) == (
            "#[allow(unused)]\n"
            "impl Hooks for () {\n"
            "    const WEIGHT: u32 = 0;\n"
            "\n"
            "    fn on_start(&mut self, round: u32) {\n"
            "    }\n"
            "\n"
            "    fn describe() -> Vec<&'static str> {\n"
            "        vec![]\n"
            "    }\n"
            "}"
        )

    def test_impl_generics_attributes_and_where_clause(self):
        source = (
            "#[cfg(feature = \"std\")]\n"
            "#[tuple_impl(2)]\n"
            "impl<Ctx: Clone> Handler<Ctx> for Tuple where Ctx: Send {\n"
            "    fn handle(&self, ctx: Ctx) {\n"
            "        for_tuples!( #( Tuple.handle(ctx.clone()); )* );\n"
            "    }\n"
            "}\n"
        )
        lines = render(source, 1).splitlines()
        assert lines[0] == "#[allow(unused)]"
        assert lines[1] == "#[cfg(feature = \"std\")]"
        assert lines[2] == "impl<Ctx: Clone, T0: Handler<Ctx>> Handler<Ctx> for (T0,) where Ctx: Send {"
        assert lines[4] == "        self.0.handle(ctx.clone());"

    def test_validate_reports_missing_zero_arity_default(self):
        source = (
            "#[tuple_impl(2)]\n"
            "impl Size for Tuple {\n"
            "    fn size(&self) -> usize {\n"
            "        for_tuples!( #( Tuple.size() )+* )\n"
            "    }\n"
            "}\n"
        )
        with pytest.raises(EmptyBodyOnZeroArityError):
            validated_strategy(source)

    def test_validate_reports_instance_access_without_receiver(self):
        source = (
            "#[tuple_impl(2)]\n"
            "impl Names for Tuple {\n"
            "    fn names() -> Vec<&'static str> {\n"
            "        vec![for_tuples!( #( Tuple.name() ),* )]\n"
            "    }\n"
            "}\n"
        )
        with pytest.raises(MalformedDirectiveError, match="self receiver"):
            validated_strategy(source)
