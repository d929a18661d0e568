"""Tests for holder recognition and role assignment."""

import json

import pytest

from resopt.config import ClassRole, ResourceConfig, RoleRule
from resopt.errors import UnknownRole


class TestDefaults:

    @pytest.mark.parametrize("name", [
        "Lcom/example/R;",
        "Lcom/example/R$styleable;",
        "Lcom/example/R$id;",
        "LR;",
    ])
    def test_holders(self, name):
        assert ResourceConfig().is_id_holder(name)

    @pytest.mark.parametrize("name", [
        "Lcom/example/Rx;",
        "Lcom/example/RR;",
        "Lcom/example/MainActivity;",
        "Lcom/example/R$styleable$Inner$;",
    ])
    def test_not_holders(self, name):
        assert not ResourceConfig().is_id_holder(name)
        assert ResourceConfig().role_for(name) is None

    def test_roles(self):
        config = ResourceConfig()
        assert config.role_for("Lcom/example/R$styleable;") == ClassRole.POSITIONAL
        assert config.role_for("Lcom/example/R;") == ClassRole.SEQUENTIAL
        assert config.role_for("Lcom/example/R$drawable;") == ClassRole.SEQUENTIAL


class TestRules:

    def test_first_match_wins(self):
        config = ResourceConfig(role_rules=(
            RoleRule(r"R;$", ClassRole.POSITIONAL),
            RoleRule(r".", ClassRole.SEQUENTIAL),
        ))
        assert config.role_for("Lcom/x/R;") == ClassRole.POSITIONAL

    def test_unknown_role(self):
        config = ResourceConfig(role_rules=(RoleRule(r"\$styleable;$", ClassRole.POSITIONAL),))
        with pytest.raises(UnknownRole) as excinfo:
            config.role_for("Lcom/x/R;")
        assert excinfo.value.class_name == "Lcom/x/R;"

    def test_invalid_pattern(self):
        with pytest.raises(ValueError):
            ResourceConfig(holder_pattern="(")

    def test_customized(self):
        config = ResourceConfig(customized_r_classes={"Lcom/x/R;"})
        assert config.is_customized("Lcom/x/R;")
        assert not config.is_customized("Lcom/x/R$styleable;")
        assert isinstance(config.customized_r_classes, frozenset)


class TestLoading:

    def test_from_dict(self):
        config = ResourceConfig.from_dict({
            "customized_r_classes": ["Lcom/x/R;"],
            "role_rules": [
                {"pattern": "\\$styleable;$", "role": "positional"},
                {"pattern": ".", "role": "SEQUENTIAL"},
            ],
        })
        assert config.is_customized("Lcom/x/R;")
        assert config.role_rules[0] == RoleRule(r"\$styleable;$", ClassRole.POSITIONAL)
        assert config.role_rules[1].role == ClassRole.SEQUENTIAL

    def test_from_json(self, tmp_path):
        path = tmp_path / "resources.json"
        path.write_text(json.dumps({"holder_pattern": "^Lcom/x/Ids;$"}))
        config = ResourceConfig.from_json(path)
        assert config.is_id_holder("Lcom/x/Ids;")
        assert not config.is_id_holder("Lcom/x/R;")

    def test_unknown_role_name(self):
        with pytest.raises(ValueError, match="unknown class role"):
            ResourceConfig.from_dict({"role_rules": [{"pattern": ".", "role": "shuffle"}]})

    def test_malformed_rule(self):
        with pytest.raises(ValueError, match="malformed role rule"):
            ResourceConfig.from_dict({"role_rules": [{"role": "positional"}]})

    def test_not_an_object(self):
        with pytest.raises(ValueError):
            ResourceConfig.from_dict(["Lcom/x/R;"])
