from pathlib import Path
import textwrap

from hog_agents.prompts import PromptLoader, build_prompt


def write_prompt(path: Path, *, phase: str, template: str) -> None:
    path.write_text(
        textwrap.dedent(
            """
            phase: {phase}
            description: Custom prompt
            template: "{template}"
            """
        ).strip().format(phase=phase, template=template),
        encoding="utf-8",
    )


def test_loader_merges_paths(tmp_path: Path) -> None:
    base = tmp_path / "base"
    base.mkdir()
    override = tmp_path / "override"
    override.mkdir()

    write_prompt(base / "review.yaml", phase="review", template="Base review")
    write_prompt(base / "plan.yml", phase="plan", template="Base plan")
    write_prompt(override / "review.yaml", phase="review", template="Override review")

    templates = PromptLoader([base, override]).templates()

    assert templates == {"review": "Override review", "plan": "Base plan"}


def test_loader_handles_missing_paths(tmp_path: Path) -> None:
    loader = PromptLoader([tmp_path / "absent"])
    assert loader.search_paths == []
    assert loader.load_all() == {}


def test_loader_skips_bad_files_and_keeps_valid_ones(tmp_path: Path, caplog) -> None:
    prompts = tmp_path / "prompts"
    prompts.mkdir()
    write_prompt(prompts / "plan.yml", phase="plan", template="Custom plan")
    (prompts / "empty-phase.yaml").write_text("phase: \ntemplate: text", encoding="utf-8")
    (prompts / "latin1.yml").write_bytes(b"phase: review\ntemplate: \xff\xfe\n")
    (prompts / "unbalanced.yaml").write_text("phase: [review\n", encoding="utf-8")
    (prompts / "notes.txt").write_text("ignored", encoding="utf-8")

    loader = PromptLoader([prompts])

    assert loader.templates() == {"plan": "Custom plan"}
    assert sorted(path.name for path in loader.skipped) == [
        "empty-phase.yaml",
        "latin1.yml",
        "unbalanced.yaml",
    ]
    skipped_paths = {getattr(record, "path", None) for record in caplog.records}
    assert str(prompts / "latin1.yml") in skipped_paths


def test_loader_ignores_blank_files(tmp_path: Path) -> None:
    (tmp_path / "blank.yml").write_text("", encoding="utf-8")

    loader = PromptLoader([tmp_path])

    assert loader.load_all() == {}
    assert loader.skipped == []


def test_build_prompt_without_template() -> None:
    assert build_prompt(3, "Crash on start", "https://x.test/3") == (
        "Issue #3: Crash on start\nURL: https://x.test/3"
    )
