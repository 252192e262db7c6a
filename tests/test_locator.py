from __future__ import annotations

from tracescope.locator import ImplementationLocator
from tracescope.vcs import CommitRecord

from conftest import FakeGateway


def test_is_implementation_path():
    locator = ImplementationLocator(FakeGateway())

    assert locator.is_implementation_path("src/auth/login.ts")
    assert locator.is_implementation_path("lib/util.go")
    assert locator.is_implementation_path("tracescope/engine.py")
    assert not locator.is_implementation_path("src/auth/login.test.ts")
    assert not locator.is_implementation_path("tests/test_engine.py")
    assert not locator.is_implementation_path("docs/guide.md")
    assert not locator.is_implementation_path("README.md")
    assert not locator.is_implementation_path("package.json")


def test_find_implementation_files_filters_and_deduplicates():
    gateway = FakeGateway(
        commits={
            "REQ-001": [
                CommitRecord(sha="1", files=["src/b.ts", "src/a.ts", "tests/a.test.ts"]),
                CommitRecord(sha="2", files=["src/a.ts", "docs/req-001.md"]),
            ]
        }
    )

    files = ImplementationLocator(gateway).find_implementation_files("REQ-001")

    assert files == ["src/a.ts", "src/b.ts"]
    assert gateway.queries == ["REQ-001"]


def test_find_implementation_files_without_commits():
    assert ImplementationLocator(FakeGateway()).find_implementation_files("REQ-404") == []


def test_gateway_failure_yields_no_files():
    class BrokenGateway(FakeGateway):
        def find_commits_referencing(self, requirement_id):
            raise RuntimeError("history unavailable")

    assert ImplementationLocator(BrokenGateway()).find_implementation_files("REQ-001") == []


def test_custom_patterns():
    locator = ImplementationLocator(FakeGateway(), include_patterns=[r"^app/"], exclude_patterns=[r"_spec\.rb$"])

    assert locator.is_implementation_path("app/models/user.rb")
    assert not locator.is_implementation_path("app/models/user_spec.rb")
    assert not locator.is_implementation_path("src/main.py")
