import logging
import sys
import textwrap

import pytest

from prompt_history.config import UpdaterConfig

FETCHED_VERSIONS = ["1.0.2", "1.0.0", "1.0.67", "1.0.1"]

GOOD_FETCH = textwrap.dedent("""
    import sys
    versions = {versions!r}
    for v in versions:
        with open(f"prompts-{{v}}.md", "w") as fh:
            fh.write(f"# Prompts {{v}}\\nYou are a helpful assistant.\\n")
    print(f"fetched {{len(versions)}} versions from {{sys.argv[1]}} to {{sys.argv[2]}}")
    print("rate limited, retrying", file=sys.stderr)
""")

BAD_FETCH = textwrap.dedent("""
    import sys
    print("starting fetch")
    print("registry unreachable", file=sys.stderr)
    sys.exit(3)
""")


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def good_fetch(tmp_path):
    script = tmp_path / "good_fetch.py"
    script.write_text(GOOD_FETCH.format(versions=FETCHED_VERSIONS))
    return (sys.executable, str(script))


@pytest.fixture
def bad_fetch(tmp_path):
    script = tmp_path / "bad_fetch.py"
    script.write_text(BAD_FETCH)
    return (sys.executable, str(script))


@pytest.fixture
def make_config(data_dir):
    def factory(fetch_command, **kwargs):
        return UpdaterConfig(data_dir=data_dir, fetch_command=fetch_command, prepare_commands=(), **kwargs)
    return factory


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger("prompt_history")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
