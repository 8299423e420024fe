"""
Kernel boundary contract.

inventory_kernel/** may NOT import inventory_config.  Settings reach the
kernel as plain keyword arguments; the config-to-engine bridge lives in
inventory_config.bridges.

Domain modules are the pure core: they may not import the store, the
services, the selectors or SQLAlchemy.

These tests read source code via AST; they cannot break anything.
"""

import ast
import glob
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


def _python_files(package: str) -> list[str]:
    return sorted(glob.glob(str(ROOT / package / "**" / "*.py"), recursive=True))


def _extract_imports(filepath: str) -> list[tuple[int, str]]:
    tree = ast.parse(Path(filepath).read_text(), filename=filepath)
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    found = []
    for filepath in _python_files(package):
        for lineno, module in _extract_imports(filepath):
            if any(module == prefix or module.startswith(f"{prefix}.") for prefix in forbidden):
                found.append(f"  {filepath}:{lineno} imports '{module}'")
    return found


class TestKernelNoUpwardDependencies:
    def test_kernel_does_not_import_config(self):
        violations = _violations("inventory_kernel", ("inventory_config",))
        assert not violations, "Kernel boundary violation:\n" + "\n".join(violations)

    def test_kernel_files_found(self):
        assert len(_python_files("inventory_kernel")) > 20


class TestDomainPurity:
    FORBIDDEN = (
        "sqlalchemy",
        "inventory_kernel.store",
        "inventory_kernel.services",
        "inventory_kernel.selectors",
        "inventory_kernel.db",
        "inventory_kernel.models",
    )

    def test_domain_is_pure(self):
        violations = _violations("inventory_kernel/domain", self.FORBIDDEN)
        assert not violations, "Domain purity violation:\n" + "\n".join(violations)
