"""Commit and pull request text for release preparation."""

from __future__ import annotations

CHART_NAME = "confidential-containers"
GENERATOR = "coco-prepare-release"


def commit_message(chart_version: str, kata_version: str) -> str:
    """Return the release commit message."""
    return (
        f"Prepare release {chart_version}\n"
        "\n"
        f"Update kata-deploy dependency to {kata_version}\n"
        "\n"
        "Changes:\n"
        f"- Chart version: {chart_version}\n"
        f"- kata-deploy version: {kata_version}\n"
        "- Updated Chart.lock\n"
        "\n"
        f"This is an automated commit created by {GENERATOR}"
    )


def pull_request_title(chart_version: str) -> str:
    """Return the release PR title."""
    return f"Release {chart_version}"


def pull_request_body(chart_version: str, kata_version: str) -> str:
    """Return the release PR description, including the post-merge checklist."""
    return f"""\
## Release {chart_version}

This PR prepares the release {chart_version} with updated kata-deploy dependency.

### Changes

- **Chart version**: {chart_version}
- **kata-deploy version**: {kata_version}
- Updated Chart.lock with new dependencies

### Checklist

- [ ] Review Chart.yaml changes
- [ ] Verify kata-deploy version is correct
- [ ] Test installation on x86_64
- [ ] Test installation on s390x
- [ ] Test installation for peer-pods
- [ ] Update CHANGELOG.md (if applicable)
- [ ] Merge this PR
- [ ] Run the Release Helm Chart workflow

### After Merge

Once this PR is merged, trigger the release workflow:
1. Go to Actions → Release Helm Chart
2. Click "Run workflow"
3. Select the main branch
4. Click "Run workflow"

This will create:
- Git tag: `v{chart_version}`
- GitHub Release with chart package
- OCI Registry: `ghcr.io/{{org}}/charts/{CHART_NAME}:{chart_version}`

---
*This PR was automatically created by `{GENERATOR}`*
"""
