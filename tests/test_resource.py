import pytest

from kube_ingress_aws.resource import ResourceLocation, parse_resource_location


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("", 'invalid resource location, expected format "namespace/name" but got ""'),
        (
            "/foo-name",
            'invalid resource location, expected format "namespace/name" but got "/foo-name"',
        ),
        (
            "foo-ns/",
            'invalid resource location, expected format "namespace/name" but got "foo-ns/"',
        ),
    ],
)
def test_parse_invalid_locations(text, message):
    with pytest.raises(ValueError) as info:
        parse_resource_location(text)
    assert str(info.value) == message


def test_parse_valid_location():
    result = parse_resource_location("foo-ns/foo-name")
    assert result == ResourceLocation(namespace="foo-ns", name="foo-name")


def test_surrounding_slashes_are_ignored():
    assert parse_resource_location("/foo-ns/foo-name/") == ResourceLocation(
        namespace="foo-ns", name="foo-name"
    )


def test_too_many_parts_is_invalid():
    with pytest.raises(ValueError):
        parse_resource_location("a/b/c")


def test_str_round_trip():
    location = ResourceLocation(namespace="foo-ns", name="foo-name")
    assert str(location) == "foo-ns/foo-name"
    assert parse_resource_location(str(location)) == location