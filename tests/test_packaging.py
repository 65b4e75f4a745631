"""
Tests for pyproject.toml — files it points at must ship with the project.
"""

import re

from kurimuzon.constants import PROJECT_ROOT


class TestPyproject:

    def test_readme_is_absent_or_present_on_disk(self):
        source = (PROJECT_ROOT / "pyproject.toml").read_text(encoding="utf-8")
        match = re.search(r'^readme\s*=\s*"([^"]+)"', source, re.MULTILINE)
        if match:
            assert (PROJECT_ROOT / match.group(1)).is_file()
            assert match.group(1) != "SPEC_FULL.md"

    def test_declared_modules_exist(self):
        source = (PROJECT_ROOT / "pyproject.toml").read_text(encoding="utf-8")
        modules = re.search(r"^py-modules\s*=\s*\[([^\]]*)\]", source, re.MULTILINE).group(1)
        for name in re.findall(r'"([^"]+)"', modules):
            assert (PROJECT_ROOT / f"{name}.py").is_file()
