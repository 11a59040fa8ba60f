"""Tests for parsing container_config mount requests."""

import json

import pytest

from mountguard.errors import MalformedMountError
from mountguard.mounts.requests import parse_mount_requests
from mountguard.mounts.types import AdditionalMount


class TestParseMountRequests:
    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_no_config_means_no_mounts(self, raw):
        requests = parse_mount_requests(raw)
        assert requests.mounts == []
        assert requests.rejections == []

    @pytest.mark.parametrize("raw", ["{}", '{"timeout": 600000}', '{"additionalMounts": null}'])
    def test_config_without_mounts(self, raw):
        requests = parse_mount_requests(raw)
        assert requests.mounts == []
        assert requests.rejections == []

    def test_parses_mounts(self):
        raw = json.dumps({
            "additionalMounts": [
                {"hostPath": "/home/user/projects", "containerPath": "projects", "readonly": False},
                {"hostPath": "/home/user/docs", "readonly": True},
                {"hostPath": "~/notes"},
            ],
        })
        requests = parse_mount_requests(raw)
        assert requests.rejections == []
        assert requests.mounts == [
            AdditionalMount(host_path="/home/user/projects", container_path="projects", readonly=False),
            AdditionalMount(host_path="/home/user/docs", readonly=True),
            AdditionalMount(host_path="~/notes"),
        ]
        assert requests.mounts[2].readonly is None

    @pytest.mark.parametrize("raw", ["{not json", "[]", '"text"'])
    def test_unusable_config(self, raw):
        requests = parse_mount_requests(raw)
        assert requests.mounts == []
        assert len(requests.rejections) == 1
        assert isinstance(requests.rejections[0].error, MalformedMountError)

    def test_mounts_not_a_list(self):
        requests = parse_mount_requests('{"additionalMounts": {"hostPath": "/x"}}')
        assert requests.mounts == []
        assert requests.rejections[0].reason == "Malformed"

    @pytest.mark.parametrize(
        "entry",
        [
            {"hostPath": "/srv/data", "mode": "rw"},
            {"hostPath": "/srv/data", "readonly": "false"},
            {"hostPath": "/srv/data", "readonly": 0},
            {"containerPath": "data"},
            {"hostPath": ""},
            "/srv/data",
        ],
    )
    def test_malformed_entries_dropped(self, entry):
        raw = json.dumps({"additionalMounts": [entry, {"hostPath": "/srv/ok"}]})
        requests = parse_mount_requests(raw)
        assert requests.mounts == [AdditionalMount(host_path="/srv/ok")]
        assert len(requests.rejections) == 1
        assert "additionalMounts[0]" in str(requests.rejections[0].error)

    def test_rejection_keeps_host_path(self):
        raw = json.dumps({"additionalMounts": [{"hostPath": "/srv/data", "mode": "rw"}]})
        assert parse_mount_requests(raw).rejections[0].host_path == "/srv/data"
