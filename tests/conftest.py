"""
Shared fixtures: small skill bundles written to a temporary directory.
"""

import os
from pathlib import Path
from typing import Dict, Optional

import pytest
import structlog

from backend.skillpack.config import reset_settings


LARAVEL_SKILL = """---
name: laravel-12
description: Laravel 12 backend best practices for Eloquent, validation and queues
metadata:
  version: 1.2.0
---

# Laravel 12

Use this skill when building Laravel 12 backends.

## Instructions

- Avoid N+1 queries, see [Eloquent](references/eloquent.md).
- Validate every request with form requests, see `references/validation.md`.

```php
$users = User::with('posts')->get();
```
"""

ELOQUENT_REFERENCE = """# Eloquent Performance

Eager load relations.

```php
Post::with('author')->paginate();
```

Validation rules live in references/validation.md.
"""

VALIDATION_REFERENCE = """# Form Request Validation

```php
public function rules(): array
{
    return ['email' => 'required|email'];
}
```
"""

TAILWIND_SKILL = """---
name: tailwind-v4
description: Tailwind CSS v4 styling with the CSS-first theme configuration
version: 4.0.0
---

# Tailwind CSS v4

Configure design tokens in CSS. Details in [theme](./references/theme.md#tokens).
"""

THEME_REFERENCE = """# Theme Tokens

```css
@theme {
  --color-brand: oklch(0.7 0.2 250);
}
```
"""

PEST_SKILL = """---
name: pest-testing
description: Pest v4 testing conventions for Laravel applications and browser tests
version: 4.0.0
---

# Pest Testing

Write expressive tests with `it()` and `expect()`.

```php
it('creates a user', function () {
    expect(User::count())->toBe(1);
});
```
"""

README = """# Skills

Guidance bundles for Laravel 12, Tailwind v4 and Pest v4.
"""


def write_skill(
    root: Path,
    dirname: str,
    skill_md: str,
    references: Optional[Dict[str, str]] = None,
) -> Path:
    """Write a skill directory and return its path."""
    skill_dir = root / dirname
    skill_dir.mkdir(parents=True, exist_ok=True)
    (skill_dir / "SKILL.md").write_text(skill_md, encoding="utf-8")
    for rel, content in (references or {}).items():
        path = skill_dir / "references" / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return skill_dir


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch):
    """Keep SKILLPACK_* variables and logging setup from leaking between tests."""
    for key in list(os.environ):
        if key.startswith("SKILLPACK_"):
            monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()
    structlog.reset_defaults()


@pytest.fixture
def make_skill():
    """Factory fixture exposing write_skill."""
    return write_skill


@pytest.fixture
def bundle_root(tmp_path) -> Path:
    """A clean three-skill bundle that passes strict lint."""
    root = tmp_path / "skills"
    root.mkdir()
    (root / "README.md").write_text(README, encoding="utf-8")
    write_skill(
        root,
        "laravel-12",
        LARAVEL_SKILL,
        {"eloquent.md": ELOQUENT_REFERENCE, "validation.md": VALIDATION_REFERENCE},
    )
    write_skill(root, "tailwind-v4", TAILWIND_SKILL, {"theme.md": THEME_REFERENCE})
    write_skill(root, "pest-testing", PEST_SKILL)
    return root
