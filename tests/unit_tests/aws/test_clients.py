from ws_infra.aws.clients import AWSClientManager, get_cloudformation_client


def test_clients_are_cached_per_region(mocked_aws):
    default = get_cloudformation_client()
    other = get_cloudformation_client("eu-west-1")

    assert default.meta.region_name == "us-east-1"
    assert other.meta.region_name == "eu-west-1"
    assert get_cloudformation_client("us-east-1") is default
    assert get_cloudformation_client("eu-west-1") is other


def test_clear_clients(mocked_aws):
    client = get_cloudformation_client()
    AWSClientManager().clear_clients()

    assert get_cloudformation_client() is not client


def test_endpoint_url_from_settings(mocked_aws, monkeypatch):
    monkeypatch.setenv("AWS_ENDPOINT_URL", "http://localhost:4566")

    client = get_cloudformation_client()

    assert client.meta.endpoint_url == "http://localhost:4566"
