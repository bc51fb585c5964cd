import subprocess
import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]

ENTRY_MODULES = (
    "src.flowdnn",
    "src.flowdnn.infrastructure.utils",
    "src.flowdnn.infrastructure.layers",
    "src.flowdnn.infrastructure.network",
    "src.flowdnn.infrastructure.solvers",
    "src.flowdnn.infrastructure.models",
    "src.flowdnn.infrastructure.registry",
)


class TestPackageImports(unittest.TestCase):
    def test_each_entry_module_imports_in_a_fresh_interpreter(self):
        for module in ENTRY_MODULES:
            with self.subTest(module=module):
                result = subprocess.run(
                    [sys.executable, "-c", f"import {module}"],
                    cwd=ROOT,
                    capture_output=True,
                    text=True,
                )
                self.assertEqual(result.returncode, 0, msg=result.stderr)

    def test_public_api_is_exported(self):
        import src.flowdnn as flowdnn

        for name in flowdnn.__all__:
            self.assertTrue(hasattr(flowdnn, name), msg=name)


if __name__ == "__main__":
    unittest.main()
