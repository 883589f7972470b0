from __future__ import annotations

import pytest

from provisioner.manifest import Manifest, ManifestError, load_manifest, parse_manifest_text


def test_markdown_frontmatter(tmp_path) -> None:
    path = tmp_path / "repo.md"
    path.write_text(
        "---\n"
        "name: payments-api\n"
        "description: Payments service\n"
        "template: acme/service-template\n"
        "visibility: Private\n"
        "include_all_branches: false\n"
        "protect: true\n"
        "---\n"
        "\n"
        "# Payments API\n"
        "Free-form notes are ignored.\n",
        encoding="utf-8",
    )

    assert load_manifest(path) == Manifest(
        name="payments-api",
        description="Payments service",
        template="acme/service-template",
        visibility="private",
        include_all_branches=False,
        protect=True,
    )


def test_plain_yaml() -> None:
    manifest = parse_manifest_text("name: lib\ntemplate: acme/library-template\nseed_source: acme/seed\n")
    assert manifest.name == "lib"
    assert manifest.seed_source == "acme/seed"
    assert manifest.visibility is None


def test_frontmatter_without_trailing_newline() -> None:
    assert parse_manifest_text("---\nname: x\n---").name == "x"


def test_empty_manifest() -> None:
    assert parse_manifest_text("") == Manifest()


@pytest.mark.parametrize(
    "text",
    [
        "---\nname: x\n",
        "- a\n- b\n",
        "visibility: internal\n",
        "protect: sometimes\n",
        "name: [a, b]\n",
        "name: {unclosed\n",
    ],
)
def test_invalid_manifests(text: str) -> None:
    with pytest.raises(ManifestError):
        parse_manifest_text(text)


def test_missing_file(tmp_path) -> None:
    with pytest.raises(ManifestError):
        load_manifest(tmp_path / "nope.md")
