import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13"]


def _install(session: nox.Session) -> None:
    """Install the project with its test extra into the nox virtualenv."""
    session.run("poetry", "install", "--all-extras", external=True)


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Run full test suite across Python versions."""
    _install(session)
    session.run("pytest")


@nox.session(python=PYTHON_VERSIONS)
def tests_domain(session: nox.Session) -> None:
    """Run domain-layer tests only (no threads, no HTTP)."""
    _install(session)
    session.run("pytest", "tests/fulfillment/domain/")


@nox.session(python=PYTHON_VERSIONS[-1])
def demo(session: nox.Session) -> None:
    """Seed the sample data and fulfill every order."""
    _install(session)
    session.run("python", "src/manage.py", "demo")
