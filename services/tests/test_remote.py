"""Tests for remote identity, refspec parsing and URL normalization."""

import pytest

from gitsource.remote import (
    ConfigurationInvalid,
    RefSpec,
    RemoteRepository,
    normalize_url,
    parse_refspec,
)

URL = "https://git.example.com/acme/widgets.git"


class TestParseRefspec:
    def test_forced_wildcard(self):
        spec = parse_refspec("+refs/heads/*:refs/remotes/origin/*")
        assert spec == RefSpec("refs/heads/*", "refs/remotes/origin/*", force=True)
        assert str(spec) == "+refs/heads/*:refs/remotes/origin/*"

    def test_source_only(self):
        spec = parse_refspec("refs/heads/master")
        assert spec.destination == ""
        assert str(spec) == "refs/heads/master"

    def test_matches(self):
        spec = parse_refspec("+refs/heads/release-*:refs/remotes/origin/release-*")
        assert spec.matches("refs/heads/release-1.0")
        assert not spec.matches("refs/heads/master")
        assert not spec.matches("refs/tags/release-1.0")

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "   ",
            "+",
            ":refs/remotes/origin/*",
            "refs/heads/*:",
            "refs/heads/*:refs/a:refs/b",
            "refs/heads/**:refs/remotes/origin/**",
            "refs/heads/*:refs/remotes/origin/master",
        ],
    )
    def test_malformed(self, text):
        with pytest.raises(ConfigurationInvalid):
            parse_refspec(text)


class TestNormalizeUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://git.example.com/acme/widgets.git",
            "https://git.example.com/acme/widgets",
            "https://git.example.com/acme/widgets/",
            "https://GIT.Example.com/acme/widgets.git/",
            "  https://git.example.com/acme/widgets.git  ",
        ],
    )
    def test_equivalent_urls(self, url):
        assert normalize_url(url) == "https://git.example.com/acme/widgets"

    def test_path_is_case_sensitive(self):
        assert normalize_url("https://git.example.com/Acme/widgets") != normalize_url(URL)

    def test_scp_style(self):
        assert normalize_url("git@git.example.com:acme/widgets.git") == (
            "git@git.example.com:acme/widgets"
        )


class TestRemoteRepository:
    def test_defaults(self):
        repo = RemoteRepository(url=URL)
        assert repo.remote_name == "origin"
        assert repo.refspecs == ()
        assert repo.refspec_string() == "+refs/heads/*:refs/remotes/origin/*"
        assert repo.refspec_string(include_tags=True) == (
            "+refs/heads/*:refs/remotes/origin/* +refs/tags/*:refs/tags/*"
        )

    def test_placeholder_substitution(self):
        repo = RemoteRepository(
            url=URL,
            remote_name="upstream",
            refspecs="+refs/heads/*:refs/remotes/@{remote}/*",
        )
        assert repo.refspec_string() == "+refs/heads/*:refs/remotes/upstream/*"

    def test_refspecs_sequence_is_split(self):
        repo = RemoteRepository(
            url=URL,
            refspecs=["+refs/heads/a:refs/remotes/origin/a  +refs/heads/b:refs/remotes/origin/b"],
        )
        assert repo.refspecs == (
            "+refs/heads/a:refs/remotes/origin/a",
            "+refs/heads/b:refs/remotes/origin/b",
        )

    def test_hashable_and_equal(self):
        first = RemoteRepository(url=URL, refspecs="+refs/heads/*:refs/remotes/origin/*")
        second = RemoteRepository(url=URL, refspecs=("+refs/heads/*:refs/remotes/origin/*",))
        assert first == second
        assert len({first, second}) == 1

    def test_credentials_are_part_of_identity(self):
        assert RemoteRepository(url=URL) != RemoteRepository(url=URL, credentials_id="key")

    def test_selects_branch(self):
        repo = RemoteRepository(
            url=URL, refspecs="+refs/heads/release-*:refs/remotes/origin/release-*"
        )
        assert repo.selects_branch("release-2")
        assert not repo.selects_branch("master")
        assert RemoteRepository(url=URL).selects_branch("anything")

    @pytest.mark.parametrize("url", ["", "   "])
    def test_empty_url(self, url):
        with pytest.raises(ConfigurationInvalid, match="must not be empty"):
            RemoteRepository(url=url)

    @pytest.mark.parametrize("name", ["", "-x", "has space", "a/b"])
    def test_invalid_remote_name(self, name):
        with pytest.raises(ConfigurationInvalid, match="Invalid remote name"):
            RemoteRepository(url=URL, remote_name=name)

    def test_invalid_refspec_rejected_at_construction(self):
        with pytest.raises(ConfigurationInvalid):
            RemoteRepository(url=URL, refspecs="refs/heads/*:refs/remotes/origin/master")
