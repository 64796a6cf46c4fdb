"""Nox sessions for push-dispatch checks."""

import nox

nox.options.sessions = ["tests", "lint", "typecheck", "check_isolation"]

PYTHON_VERSIONS = ["3.13", "3.14"]


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Run unit and property tests with coverage of the push_dispatch package.

    Extra arguments are passed to pytest, e.g. ``nox -s tests -- -m unit``.
    """
    session.run("uv", "sync", "--extra", "test", external=True)
    session.run(
        "pytest",
        "--cov=push_dispatch",
        "--cov-report=term-missing:skip-covered",
        "--cov-fail-under=85",
        *session.posargs,
    )


@nox.session(python="3.14")
def lint(session: nox.Session) -> None:
    """Run ruff lint and format checks over sources, tests and scripts."""
    session.run("uv", "sync", "--extra", "dev", external=True)
    session.run("ruff", "check", "src", "tests", "scripts", "noxfile.py")
    session.run("ruff", "format", "--check", "src", "tests", "scripts", "noxfile.py")


@nox.session(python="3.14")
def typecheck(session: nox.Session) -> None:
    """Type-check the package with basedpyright."""
    session.run("uv", "sync", "--all-extras", external=True)
    session.run("uvx", "basedpyright@latest", "src", external=True)


@nox.session(python=False)
def check_isolation(session: nox.Session) -> None:
    """Fail when the shared packages import or name a gateway.

    Shared code under types/, utils/ and notifications/ must stay usable by
    any push gateway; GCM specifics belong in providers/gcm/.
    """
    session.run("python3", "scripts/check_provider_isolation.py")
