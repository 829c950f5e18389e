"""Tests for credential materialization."""

from __future__ import annotations

import os
import pathlib
import stat
import threading

import pytest

from sshgate.core.exceptions import CredentialError
from sshgate.domain.ssh.credentials import Credential, CredentialMaterializer

from .conftest import FAKE_CERTIFICATE, FAKE_PRIVATE_KEY


class TestCredential:
    def test_gateway_defaults_to_remote_host(self) -> None:
        cred = Credential(
            user_name="bob",
            private_key=FAKE_PRIVATE_KEY,
            certificate=FAKE_CERTIFICATE,
            remote_host="node02",
        )
        assert cred.via_gateway == "node02"

    def test_repr_hides_key_material(self, credential: Credential) -> None:
        text = repr(credential)
        assert "alice" in text
        assert "PRIVATE KEY" not in text
        assert "cert-v01" not in text

    def test_immutable(self, credential: Credential) -> None:
        with pytest.raises(AttributeError):
            credential.user_name = "mallory"  # type: ignore[misc]

    def test_formatted_time_since_issued(self, credential: Credential) -> None:
        assert credential.formatted_time_since_issued() == "00:00:00"


class TestMaterialize:
    def test_files_contain_exactly_the_material(
        self, credential: Credential, cred_dir: pathlib.Path
    ) -> None:
        with CredentialMaterializer(str(cred_dir)).materialize(credential) as files:
            assert files.private_key_file.read_text() == FAKE_PRIVATE_KEY
            assert files.certificate_file.read_text() == FAKE_CERTIFICATE
            assert sorted(p.name for p in files.directory.iterdir()) == ["id_rsa", "id_rsa-cert.pub"]

    def test_private_key_is_owner_read_only(
        self, credential: Credential, cred_dir: pathlib.Path
    ) -> None:
        with CredentialMaterializer(str(cred_dir)).materialize(credential) as files:
            mode = stat.S_IMODE(files.private_key_file.stat().st_mode)
            assert mode == 0o400
            assert stat.S_IMODE(files.directory.stat().st_mode) == 0o700
            assert stat.S_IMODE(files.certificate_file.stat().st_mode) & 0o077 == 0

    def test_directory_named_after_user(
        self, credential: Credential, cred_dir: pathlib.Path
    ) -> None:
        with CredentialMaterializer(str(cred_dir)).materialize(credential) as files:
            assert files.directory.parent == cred_dir
            assert files.directory.name.startswith("ssh-authz-alice-")

    def test_release_leaves_no_residue(
        self, credential: Credential, cred_dir: pathlib.Path
    ) -> None:
        materializer = CredentialMaterializer(str(cred_dir))
        handle = materializer.materialize(credential)
        materializer.release(handle)
        assert handle.released
        assert list(cred_dir.iterdir()) == []

    def test_release_is_idempotent(
        self, credential: Credential, cred_dir: pathlib.Path
    ) -> None:
        handle = CredentialMaterializer(str(cred_dir)).materialize(credential)
        handle.release()
        handle.release()
        assert list(cred_dir.iterdir()) == []

    def test_released_when_block_raises(
        self, credential: Credential, cred_dir: pathlib.Path
    ) -> None:
        with pytest.raises(RuntimeError):
            with CredentialMaterializer(str(cred_dir)).materialize(credential):
                raise RuntimeError("boom")
        assert list(cred_dir.iterdir()) == []

    def test_concurrent_materializations_get_distinct_directories(
        self, credential: Credential, cred_dir: pathlib.Path
    ) -> None:
        materializer = CredentialMaterializer(str(cred_dir))
        handles = []
        lock = threading.Lock()

        def worker() -> None:
            handle = materializer.materialize(credential)
            with lock:
                handles.append(handle)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len({h.directory for h in handles}) == 8
        for handle in handles:
            handle.release()
        assert list(cred_dir.iterdir()) == []

    def test_missing_parent_directory_raises_credential_error(
        self, credential: Credential, tmp_path: pathlib.Path
    ) -> None:
        materializer = CredentialMaterializer(str(tmp_path / "does-not-exist"))
        with pytest.raises(CredentialError):
            materializer.materialize(credential)

    @pytest.mark.skipif(os.geteuid() == 0, reason="root ignores directory permissions")
    def test_unwritable_parent_raises_credential_error(
        self, credential: Credential, tmp_path: pathlib.Path
    ) -> None:
        parent = tmp_path / "readonly"
        parent.mkdir()
        parent.chmod(0o500)
        try:
            with pytest.raises(CredentialError):
                CredentialMaterializer(str(parent)).materialize(credential)
        finally:
            parent.chmod(0o700)
