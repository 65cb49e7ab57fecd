import pytest

from sanitize import sanitize_input


@pytest.mark.unit
class TestSanitizeInput:

    def test_strips_markup(self):
        assert sanitize_input("  hi<script>alert(1)</script> there ") == "hi there"
        assert sanitize_input("<b>bold</b>") == "bbold/b"
        assert sanitize_input("JavaScript:go()") == "go()"
        assert sanitize_input('x onclick="y"') == 'x "y"'

    def test_recurses_into_containers(self):
        cleaned = sanitize_input({" key ": ["<a>", 1, None, True], "n": {"deep": " v "}})

        assert cleaned == {"key": ["a", 1, None, True], "n": {"deep": "v"}}

    def test_scalars_untouched(self):
        assert sanitize_input(3.5) == 3.5
        assert sanitize_input(None) is None
