"""
Tests for download planner logic.

Integration tests for plan_downloads() - what gets downloaded, skipped,
excluded or kept, and in what order.
"""

import random

import pytest

from autoupdater.config import RemoteConfig
from autoupdater.exceptions import ParseError
from autoupdater.manifest import FileEntry, Manifest
from autoupdater.sync.download_planner import (
    DownloadPlan,
    DownloadTask,
    ExclusionRules,
    plan_downloads,
)


def entries(*pairs) -> Manifest:
    return Manifest(FileEntry(path, md5) for path, md5 in pairs)


class TestPlanDownloadsBasics:
    """Tests for the missing / matching / changed decisions."""

    def test_example_scenario(self):
        """Changed file backed up, missing file downloaded, excluded folder left out."""
        local = entries(("a.txt", "X"))
        remote = entries(("a.txt", "Y"), ("b.txt", "Z"), ("docs/c.txt", "W"))
        rules = ExclusionRules(excluded_folders=("docs/",))

        plan = plan_downloads(local, remote, rules)

        assert plan.tasks == (
            DownloadTask("a.txt", exists_locally=True, requires_backup=True),
            DownloadTask("b.txt", exists_locally=False, requires_backup=False),
        )
        assert plan.excluded == (("docs/c.txt", "folder"),)

    def test_matching_file_skipped(self):
        plan = plan_downloads(entries(("a.txt", "X")), entries(("a.txt", "X")), ExclusionRules())
        assert plan.tasks == ()
        assert plan.current == ("a.txt",)
        assert plan.skipped == 1
        assert not plan

    def test_missing_file_downloaded_without_backup(self):
        plan = plan_downloads(Manifest(), entries(("a.txt", "X")), ExclusionRules())
        assert len(plan) == 1
        assert not plan.tasks[0].exists_locally
        assert not plan.tasks[0].requires_backup

    def test_remote_path_carried_into_task(self):
        remote = Manifest([FileEntry("a.txt", "X", remote_path="data/a.txt")])
        plan = plan_downloads(Manifest(), remote, ExclusionRules())
        assert plan.tasks[0].remote_path == "data/a.txt"

    def test_local_only_files_untouched(self):
        plan = plan_downloads(entries(("mine.txt", "X")), Manifest(), ExclusionRules())
        assert plan.tasks == ()
        assert plan.untracked == ("mine.txt",)

    def test_lookup_is_exact(self):
        """A differently-cased local file does not count as present."""
        plan = plan_downloads(entries(("A.txt", "X")), entries(("a.txt", "X")), ExclusionRules())
        assert plan.paths == ("a.txt",)
        assert not plan.tasks[0].exists_locally


class TestPlanDownloadsExclusions:
    """Tests for excludedFiles and excludedFolders."""

    def test_excluded_file_never_planned(self):
        rules = ExclusionRules(excluded_files=frozenset({"config.json"}))
        plan = plan_downloads(Manifest(), entries(("config.json", "X"), ("b.txt", "Y")), rules)
        assert plan.paths == ("b.txt",)
        assert plan.excluded == (("config.json", "file"),)

    def test_excluded_file_matches_exact_path_only(self):
        rules = ExclusionRules(excluded_files=frozenset({"config.json"}))
        plan = plan_downloads(Manifest(), entries(("sub/config.json", "X")), rules)
        assert plan.paths == ("sub/config.json",)

    def test_excluded_folder_covers_nested_files(self):
        rules = ExclusionRules(excluded_folders=("Profiles",))
        remote = entries(("Profiles/a/b.txt", "X"), ("Profiles/c.txt", "Y"), ("Other/d.txt", "Z"))
        plan = plan_downloads(Manifest(), remote, rules)
        assert plan.paths == ("Other/d.txt",)

    def test_excluded_folder_matches_whole_components(self):
        rules = ExclusionRules(excluded_folders=("doc",))
        plan = plan_downloads(Manifest(), entries(("docs/a.txt", "X")), rules)
        assert plan.paths == ("docs/a.txt",)

    def test_exclusion_beats_changed_local_file(self):
        rules = ExclusionRules(excluded_files=frozenset({"a.txt"}), excluded_folders=("cfg/",))
        local = entries(("a.txt", "OLD"), ("cfg/x.ini", "OLD"))
        remote = entries(("a.txt", "NEW"), ("cfg/x.ini", "NEW"))
        plan = plan_downloads(local, remote, rules)
        assert plan.tasks == ()
        assert len(plan.excluded) == 2

    def test_rules_are_normalized(self):
        rules = ExclusionRules(
            excluded_files=frozenset({"./sub\\a.txt"}),
            excluded_folders=("/Music//",),
        )
        remote = entries(("sub/a.txt", "X"), ("Music/song.ogg", "Y"))
        assert plan_downloads(Manifest(), remote, rules).tasks == ()

    def test_empty_folder_rule_ignored(self):
        rules = ExclusionRules(excluded_folders=("/", "./"))
        plan = plan_downloads(Manifest(), entries(("a.txt", "X")), rules)
        assert plan.paths == ("a.txt",)


class TestPlanDownloadsOnlyNew:
    """Tests for onlyNewFiles retention."""

    def test_existing_only_new_file_kept_even_when_stale(self):
        rules = ExclusionRules(only_new_files=frozenset({"scores.dat"}))
        plan = plan_downloads(entries(("scores.dat", "MINE")), entries(("scores.dat", "SERVER")), rules)
        assert plan.tasks == ()
        assert plan.retained == ("scores.dat",)

    def test_missing_only_new_file_downloaded(self):
        rules = ExclusionRules(only_new_files=frozenset({"scores.dat"}))
        plan = plan_downloads(Manifest(), entries(("scores.dat", "SERVER")), rules)
        assert plan.paths == ("scores.dat",)
        assert not plan.tasks[0].requires_backup

    def test_matching_only_new_file_counts_as_current(self):
        rules = ExclusionRules(only_new_files=frozenset({"scores.dat"}))
        plan = plan_downloads(entries(("scores.dat", "X")), entries(("scores.dat", "X")), rules)
        assert plan.current == ("scores.dat",)
        assert plan.retained == ()


class TestPlanDownloadsProperties:
    """Order, determinism and task invariants over generated inputs."""

    @pytest.fixture
    def generated(self):
        rng = random.Random(1234)
        names = [f"dir{rng.randrange(4)}/file{i}.txt" for i in range(60)]
        remote = Manifest(FileEntry(n, rng.choice("abc")) for n in names)
        local = Manifest(FileEntry(n, rng.choice("abc")) for n in names if rng.random() < 0.6)
        rules = ExclusionRules(
            excluded_files=frozenset(names[::11]),
            excluded_folders=("dir3",),
            only_new_files=frozenset(names[::7]),
        )
        return local, remote, rules

    def test_same_inputs_same_plan(self, generated):
        local, remote, rules = generated
        assert plan_downloads(local, remote, rules) == plan_downloads(local, remote, rules)

    def test_tasks_follow_listing_order(self, generated):
        local, remote, rules = generated
        plan = plan_downloads(local, remote, rules)
        order = {path: i for i, path in enumerate(remote.paths)}
        positions = [order[p] for p in plan.paths]
        assert positions == sorted(positions)

    def test_no_excluded_path_planned(self, generated):
        local, remote, rules = generated
        for task in plan_downloads(local, remote, rules).tasks:
            assert rules.is_excluded(task.path) is None

    def test_no_existing_only_new_path_planned(self, generated):
        local, remote, rules = generated
        for task in plan_downloads(local, remote, rules).tasks:
            assert not (task.path in rules.only_new_files and task.path in local)

    def test_backup_flag_matches_local_presence(self, generated):
        local, remote, rules = generated
        for task in plan_downloads(local, remote, rules).tasks:
            assert task.exists_locally == (task.path in local)
            assert task.requires_backup == task.exists_locally

    def test_every_entry_accounted_for(self, generated):
        local, remote, rules = generated
        plan = plan_downloads(local, remote, rules)
        assert len(plan) + plan.skipped == len(remote)


class TestDownloadTask:
    """Tests for DownloadTask invariants."""

    def test_backup_requires_local_file(self):
        with pytest.raises(ValueError):
            DownloadTask("a.txt", exists_locally=False, requires_backup=True)

    def test_remote_path_defaults_to_path(self):
        assert DownloadTask("a.txt").remote_path == "a.txt"

    def test_plan_is_immutable(self):
        plan = DownloadPlan(tasks=(DownloadTask("a.txt"),))
        with pytest.raises(AttributeError):
            plan.tasks = ()


class TestExclusionRulesFromConfig:
    """Tests for ExclusionRules.from_config()."""

    def test_built_from_remote_config(self):
        remote = RemoteConfig.from_dict({
            "dataFolder": "data/",
            "excludedFiles": ["a.txt"],
            "excludedFolders": ["docs/"],
            "onlyNewFiles": ["scores.dat"],
        })
        rules = ExclusionRules.from_config(remote)
        assert rules.excluded_files == frozenset({"a.txt"})
        assert rules.excluded_folders == ("docs",)
        assert rules.only_new_files == frozenset({"scores.dat"})

    def test_invalid_rule_is_parse_error(self):
        remote = RemoteConfig.from_dict({"dataFolder": "d", "excludedFiles": ["../x"]})
        with pytest.raises(ParseError):
            ExclusionRules.from_config(remote)
