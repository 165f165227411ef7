import unittest
from services.conditions import (
    evaluate_condition,
    lookup_variable,
    resolve_destination,
    resolve_template,
    stringify,
)


class TestEvaluateCondition(unittest.TestCase):

    def test_missing_or_malformed_condition_shows(self):
        self.assertTrue(evaluate_condition(None, {}))
        self.assertTrue(evaluate_condition({}, {}))
        self.assertTrue(evaluate_condition({"variable": "goal"}, {}))
        self.assertTrue(evaluate_condition({"operator": "equals", "value": 1}, {}))
        self.assertTrue(evaluate_condition("not a condition", {}))

    def test_equals_is_strict(self):
        self.assertTrue(evaluate_condition({"variable": "age", "operator": "equals", "value": 30}, {"age": 30}))
        self.assertTrue(evaluate_condition({"variable": "age", "operator": "equals", "value": 30}, {"age": 30.0}))
        self.assertFalse(evaluate_condition({"variable": "age", "operator": "equals", "value": "30"}, {"age": 30}))
        self.assertFalse(evaluate_condition({"variable": "opt_in", "operator": "equals", "value": 1}, {"opt_in": True}))
        self.assertTrue(evaluate_condition({"variable": "opt_in", "operator": "not_equals", "value": 1}, {"opt_in": True}))

    def test_numeric_comparisons(self):
        variables = {"age": 21, "name": "ada"}
        self.assertTrue(evaluate_condition({"variable": "age", "operator": "greater_than", "value": 18}, variables))
        self.assertFalse(evaluate_condition({"variable": "age", "operator": "less_than", "value": 18}, variables))
        self.assertFalse(evaluate_condition({"variable": "name", "operator": "greater_than", "value": 1}, variables))
        self.assertFalse(evaluate_condition({"variable": "missing", "operator": "less_than", "value": 1}, variables))

    def test_contains_and_in(self):
        variables = {"bio": "loves running", "goals": ["sleep", "focus"], "plan": "pro"}
        self.assertTrue(evaluate_condition({"variable": "bio", "operator": "contains", "value": "run"}, variables))
        self.assertTrue(evaluate_condition({"variable": "goals", "operator": "contains", "value": "focus"}, variables))
        self.assertFalse(evaluate_condition({"variable": "goals", "operator": "contains", "value": "diet"}, variables))
        self.assertFalse(evaluate_condition({"variable": "plan", "operator": "contains", "value": 1}, variables))
        self.assertTrue(evaluate_condition({"variable": "plan", "operator": "in", "value": ["pro", "team"]}, variables))
        self.assertFalse(evaluate_condition({"variable": "plan", "operator": "in", "value": "pro"}, variables))

    def test_emptiness(self):
        variables = {"blank": "", "none": None, "items": [], "name": "ada", "zero": 0}
        for name in ("blank", "none", "items", "unset"):
            self.assertTrue(evaluate_condition({"variable": name, "operator": "is_empty"}, variables), name)
        for name in ("name", "zero"):
            self.assertTrue(evaluate_condition({"variable": name, "operator": "is_not_empty"}, variables), name)

    def test_unknown_operator_hides(self):
        self.assertFalse(evaluate_condition({"variable": "age", "operator": "between", "value": [1, 2]}, {"age": 1}))

    def test_combinators(self):
        adult = {"variable": "age", "operator": "greater_than", "value": 17}
        pro = {"variable": "plan", "operator": "equals", "value": "pro"}
        variables = {"age": 30, "plan": "free"}

        self.assertFalse(evaluate_condition({"all": [adult, pro]}, variables))
        self.assertTrue(evaluate_condition({"any": [adult, pro]}, variables))
        self.assertTrue(evaluate_condition({"not": pro}, variables))
        self.assertTrue(evaluate_condition({"all": [adult, {"not": {"any": [pro]}}]}, variables))

    def test_non_list_combinators_are_not_valid_structure(self):
        self.assertTrue(evaluate_condition({"all": 5}, {}))
        self.assertTrue(evaluate_condition({"any": "abc"}, {}))
        self.assertFalse(evaluate_condition({"any": None, "variable": "a", "operator": "equals", "value": 2}, {"a": 1}))
        self.assertTrue(evaluate_condition({"variable": ["a"], "operator": "equals", "value": 1}, {}))
        self.assertTrue(evaluate_condition({"all": ["junk", None]}, {}))

    def test_empty_combinators(self):
        self.assertTrue(evaluate_condition({"all": []}, {}))
        self.assertFalse(evaluate_condition({"any": []}, {}))


class TestTemplates(unittest.TestCase):

    def test_simple_and_missing_variables(self):
        self.assertEqual(resolve_template("Hi {name}!", {"name": "Ada"}), "Hi Ada!")
        self.assertEqual(resolve_template("Hi {name}!", {}), "Hi !")
        self.assertEqual(resolve_template("no placeholders", {"name": "Ada"}), "no placeholders")
        self.assertEqual(resolve_template("", {}), "")

    def test_dot_paths(self):
        variables = {"user": {"name": "Ada", "tags": ["a", "b"]}, "plan.name": "Pro"}
        self.assertEqual(resolve_template("{user.name}", variables), "Ada")
        self.assertEqual(resolve_template("{user.tags.1}", variables), "b")
        self.assertEqual(resolve_template("{plan.name}", variables), "Pro")
        self.assertEqual(resolve_template("{user.missing.deeper}", variables), "")

    def test_value_formatting(self):
        self.assertEqual(stringify(True), "true")
        self.assertEqual(stringify(3.0), "3")
        self.assertEqual(stringify(2.5), "2.5")
        self.assertEqual(stringify(["a", 1]), '["a",1]')
        self.assertEqual(stringify(None), "")
        self.assertEqual(resolve_template("{count} items", {"count": 4}), "4 items")

    def test_lookup_prefers_exact_key(self):
        self.assertEqual(lookup_variable("a.b", {"a.b": 1, "a": {"b": 2}}), 1)
        self.assertEqual(lookup_variable("a.b", {"a": {"b": 2}}), 2)
        self.assertIsNone(lookup_variable("a", {}))


class TestResolveDestination(unittest.TestCase):

    def test_plain_and_empty(self):
        self.assertEqual(resolve_destination("screen_2", {}), "screen_2")
        self.assertIsNone(resolve_destination(None, {}))
        self.assertIsNone(resolve_destination("", {}))
        self.assertIsNone(resolve_destination(42, {}))

    def test_routes_table(self):
        destination = {
            "routes": [
                {"condition": {"variable": "goal", "operator": "equals", "value": "sleep"}, "destination": "sleep_tips"},
                {"condition": {"variable": "goal", "operator": "equals", "value": "focus"}, "destination": "focus_tips"},
            ],
            "default": "generic_tips",
        }
        self.assertEqual(resolve_destination(destination, {"goal": "focus"}), "focus_tips")
        self.assertEqual(resolve_destination(destination, {"goal": "diet"}), "generic_tips")
        self.assertIsNone(resolve_destination({"routes": []}, {}))

    def test_if_then_else(self):
        is_pro = {"variable": "plan", "operator": "equals", "value": "pro"}
        is_team = {"variable": "plan", "operator": "equals", "value": "team"}
        destination = {"if": is_pro, "then": "pro_home", "else": {"if": is_team, "then": "team_home", "else": "paywall"}}

        self.assertEqual(resolve_destination(destination, {"plan": "pro"}), "pro_home")
        self.assertEqual(resolve_destination(destination, {"plan": "team"}), "team_home")
        self.assertEqual(resolve_destination(destination, {"plan": "free"}), "paywall")

    def test_malformed_routes_fall_back(self):
        good = {"condition": {"variable": "goal", "operator": "equals", "value": "sleep"}, "destination": "sleep_tips"}
        self.assertEqual(resolve_destination({"routes": ["bad", None, good], "default": "home"}, {"goal": "sleep"}), "sleep_tips")
        self.assertEqual(resolve_destination({"routes": ["bad"], "default": "home"}, {}), "home")
        self.assertEqual(resolve_destination({"routes": "bad", "default": "home"}, {}), "home")
        self.assertIsNone(resolve_destination({"routes": [], "default": ["not", "a", "screen"]}, {}))

    def test_nested_branches_resolve(self):
        destination = {"if": {"variable": "plan", "operator": "equals", "value": "pro"},
                       "then": {"routes": [], "default": "pro_home"}}
        self.assertEqual(resolve_destination(destination, {"plan": "pro"}), "pro_home")

    def test_if_without_else_goes_next(self):
        destination = {"if": {"variable": "plan", "operator": "equals", "value": "pro"}, "then": "pro_home"}
        self.assertEqual(resolve_destination(destination, {}), "next")


if __name__ == "__main__":
    unittest.main()
