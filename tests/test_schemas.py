import pytest
from pydantic import ValidationError

from schemas import CheckboxField, Form, FormUpdate, NumberField, SelectField, TextField


@pytest.mark.unit
class TestFieldDefinitions:
    """Structural rules enforced when a schema is built"""

    def test_type_selects_model(self):
        form = Form.model_validate({"title": "T", "fields": [
            {"label": "A", "name": "a", "type": "text"},
            {"label": "B", "name": "b", "type": "number", "validation": {"min": 1}},
            {"label": "C", "name": "c", "type": "checkbox"},
            {"label": "D", "name": "d", "type": "select", "options": [{"label": "X", "value": "x"}]},
        ]})

        assert [type(f) for f in form.fields] == [TextField, NumberField, CheckboxField, SelectField]
        assert form.fields[1].validation.min == 1
        assert form.version == 1
        assert form.isActive is True

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            Form.model_validate({"title": "T", "fields": [{"label": "A", "name": "a", "type": "file"}]})

    @pytest.mark.parametrize("name", ["Name", "with space", "under_score", ""])
    def test_invalid_names_rejected(self, name):
        with pytest.raises(ValidationError):
            TextField(label="A", name=name)

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValidationError, match="duplicate field name"):
            Form.model_validate({"title": "T", "fields": [
                {"label": "A", "name": "a", "type": "text"},
                {"label": "A again", "name": "a", "type": "email"},
            ]})

    def test_duplicate_nested_keys_rejected(self):
        options = [
            {"label": "X", "value": "x", "nestedFields": [{"label": "N", "name": "n", "type": "text"}]},
            {"label": "Y", "value": "y", "nestedFields": [{"label": "N", "name": "n", "type": "date"}]},
        ]
        with pytest.raises(ValidationError, match="duplicate nested answer key"):
            FormUpdate(fields=[{"label": "P", "name": "p", "type": "radio", "options": options}])

    def test_nested_fields_cannot_carry_options(self):
        with pytest.raises(ValidationError):
            SelectField(label="P", name="p", options=[{
                "label": "X",
                "value": "x",
                "nestedFields": [{"label": "Inner", "name": "inner", "type": "select", "options": []}],
            }])

    def test_checkbox_options_cannot_carry_nested_fields(self):
        with pytest.raises(ValidationError, match="checkbox options cannot carry nested fields"):
            CheckboxField(label="C", name="c", options=[{
                "label": "X",
                "value": "x",
                "nestedFields": [{"label": "N", "name": "n", "type": "text"}],
            }])

    def test_checkbox_options_with_empty_nested_list_accepted(self):
        field = CheckboxField(label="C", name="c", options=[{"label": "X", "value": "x", "nestedFields": []}])

        assert field.options[0].value == "x"

    def test_irrelevant_keys_are_ignored(self):
        field = Form.model_validate({"title": "T", "fields": [
            {"_id": "abc", "label": " Email ", "name": "email", "type": "email", "validation": {"min": 1}},
        ]}).fields[0]

        assert field.label == "Email"
        assert not hasattr(field, "validation")
