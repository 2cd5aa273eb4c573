from tests.fixtures.aws_fixtures import *  # noqa: F401,F403
