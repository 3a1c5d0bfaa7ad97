"""Nox sessions for the cup organizer engine."""

import nox

nox.options.sessions = ["tests", "lint"]
PYTHON = "3.11"
PACKAGE = "tournament_engine"


@nox.session(python=PYTHON)
def tests(session):
    """Run the pytest suite with branch coverage of the engine package."""
    session.install("-e", ".[dev]")
    session.run(
        "pytest",
        f"--cov={PACKAGE}",
        "--cov-branch",
        "--cov-report=term-missing",
        "--cov-fail-under=85",
        *session.posargs,
    )


@nox.session(python=PYTHON)
def lint(session):
    """Check style with ruff."""
    session.install("ruff>=0.1.0")
    session.run("ruff", "check", PACKAGE, "tests", "scripts")
    session.run("ruff", "format", "--check", PACKAGE, "tests", "scripts")


@nox.session(python=PYTHON)
def format_code(session):
    session.install("ruff>=0.1.0")
    session.run("ruff", "format", PACKAGE, "tests", "scripts")
    session.run("ruff", "check", "--fix", PACKAGE, "tests", "scripts")


@nox.session(python=PYTHON)
def simulate(session):
    """Play a seeded cup in memory: ``nox -s simulate -- --seed 7``."""
    session.install("-e", ".")
    args = session.posargs or ["--seed", "2024"]
    session.run("python", "scripts/simulate_cup.py", *args)
