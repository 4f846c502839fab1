from __future__ import annotations

import os
from typing import Any

import pytest


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        '--fuzz-n',
        action='store',
        type=int,
        default=5,
        help='Number of iterations per fuzz test (default: 5).',
    )
    parser.addoption(
        '--fuzz-seed',
        action='store',
        type=int,
        default=None,
        help=(
            'Optional base seed for fuzz tests. If not set, a deterministic seed is '
            'chosen.'
        ),
    )


@pytest.fixture(scope='session')
def fuzz_settings(request: pytest.FixtureRequest) -> dict[str, Any]:
    """Settings shared by fuzz tests.

    Fuzz tests are reproducible by default; the number of iterations and the
    seed can be overridden from the command line.
    """
    n: int = int(request.config.getoption('--fuzz-n'))
    seed = request.config.getoption('--fuzz-seed')
    if seed is None:
        env_seed = os.environ.get('RADTESS_FUZZ_SEED')
        seed = int(env_seed) if env_seed is not None else 0
    return {'n': n, 'seed': int(seed)}

