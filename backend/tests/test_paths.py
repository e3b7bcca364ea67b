import pytest

from jz.paths import build_entry_path, extract_path_params, join_paths, normalize_path, strip_base_path


@pytest.mark.parametrize("raw,expected", [
    ("", ""),
    ("/", "/"),
    ("tenants", "/tenants"),
    ("/tenants/", "/tenants"),
    ("//tenants///{id}//", "/tenants/{id}"),
])
def test_normalize_path(raw, expected):
    assert normalize_path(raw) == expected


@pytest.mark.parametrize("raw", ["", "/", "a", "a/", "//a//b/", "/x/{id}/", "///"])
def test_normalize_is_idempotent_and_has_no_trailing_slash(raw):
    once = normalize_path(raw)
    assert normalize_path(once) == once
    assert once == "/" or not once.endswith("/")


@pytest.mark.parametrize("base,sub", [
    ("/tenants", "/{id}"),
    ("tenants/", "{id}"),
    ("/", "/"),
    ("/a//", "//b"),
])
def test_join_paths_is_rooted_without_double_slashes(base, sub):
    joined = join_paths(base, sub)
    assert joined.startswith("/")
    assert "//" not in joined


def test_build_entry_path_defaults_to_root():
    assert build_entry_path("", "") == "/"
    assert build_entry_path("/tenants", "") == "/tenants"
    assert build_entry_path("", "/health") == "/health"


def test_strip_base_path_respects_segments():
    assert strip_base_path("/tenants/{id}", "/tenants") == "/{id}"
    assert strip_base_path("/tenants", "/tenants") == ""
    # "/tenantsX" does not live under "/tenants"
    assert strip_base_path("/tenantsX/1", "/tenants") == "/tenantsX/1"
    assert strip_base_path("/a", "/") == "/a"


def test_extract_path_params_in_order():
    assert extract_path_params("/tenants/{tenantId}/users/{id}") == ["tenantId", "id"]
    assert extract_path_params("/health") == []
