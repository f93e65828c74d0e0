import base64
import hashlib
import json
import signal
from pathlib import Path

import pytest

from glitterboot.config.models import BinariesConfig, BootConfig, PathsConfig, PollConfig
from glitterboot.core.context import PipelineContext
from glitterboot.core.errors import CommandError, DownloadError, PreconditionError, RPCError, StoreError, ValidationError
from glitterboot.core.store import FileStore
from glitterboot.lifecycle.operator import NodeOperation, NodeOperator
from glitterboot.lifecycle.steps import NodeOpsArgs, OperationCatalog
from glitterboot.lifecycle.toolbox import Toolbox
from glitterboot.bootstrap.template_renderer import TemplateRenderer
from glitterboot.node.keys import KeyGenerator
from glitterboot.observers.dispatcher import EventBus
from glitterboot.observers.events import PipelineSummary, StepSkipped, StepWarning
from glitterboot.rpc.client import Validator
from glitterboot.utils.host import HostOps

SEEDS = "3a4f0e1d@10.0.0.1:26656,9bc1aa00@10.0.0.2:26656"


# ----------------- Fakes -----------------

class FakeChain:
    """Seed cluster + local engine: admin requests grow the validator set."""

    def __init__(self, errors=0):
        self.validator_set = []
        self.admin_calls = []
        self.rpc_urls = []
        self.admin_urls = []
        self.errors = errors

    # TendermintClient surface
    def genesis(self):
        return {"chain_id": "glitter-test", "validators": []}

    def validators(self):
        if self.errors:
            self.errors -= 1
            raise RPCError("connection refused")
        return list(self.validator_set)

    # GlitterAdminClient surface
    def update_validator(self, pub_key, power=1):
        self.admin_calls.append((pub_key, power))
        address = hashlib.sha256(base64.b64decode(pub_key)).digest()[:20].hex().upper()
        self.validator_set.append(Validator(address=address, pub_key=pub_key, voting_power=power))
        return '{"code":0}\n'

    def rpc_client(self, url):
        self.rpc_urls.append(url)
        return self

    def admin_client(self, url):
        self.admin_urls.append(url)
        return self


class FakeSystemd:
    def __init__(self, fail_stop=False):
        self.calls = []
        self.fail_stop = fail_stop

    def start(self, unit):
        self.calls.append(("start", unit))

    def stop(self, unit):
        self.calls.append(("stop", unit))
        if self.fail_stop:
            raise CommandError(["systemctl", "stop", unit], 5, f"Unit {unit}.service not loaded.")

    def restart(self, unit):
        self.calls.append(("restart", unit))

    def daemon_reload(self):
        self.calls.append(("daemon-reload",))

    def is_active(self, unit):
        return "active"


class FakeDownloader:
    def __init__(self, fail=False):
        self.urls = []
        self.fail = fail

    def download(self, url, dest):
        self.urls.append(url)
        if self.fail:
            raise DownloadError(f"bad status: 404 Not Found ({url})")
        Path(dest).write_bytes(b"#!/bin/sh\n")
        return dest


class FakeHost(HostOps):
    """Real filesystem ops under tmp_path; accounts and ownership are recorded only."""

    def __init__(self, users_exist=True):
        self.users_exist = users_exist
        self.chowned = []

    def check_user_group(self, user, group):
        if not self.users_exist:
            raise ValidationError(f"user {user!r} does not exist on this host")

    def chown(self, path, user, group, recursive=False):
        self.chowned.append((Path(path), user, group, recursive))


class Capture:
    def __init__(self):
        self.events = []

    def notify(self, event):
        self.events.append(event)


class Env:
    def __init__(self, tmp_path, *, chain=None, systemd=None, downloader=None, host=None):
        self.cfg = BootConfig(
            paths=PathsConfig(
                install_dir=tmp_path / "glitter",
                systemd_dir=tmp_path / "systemd",
                bin_dir=tmp_path / "bin",
                scratch_dirs=[tmp_path / "kvstore"],
            ),
            binaries=BinariesConfig(engine_url="https://dl.example.org/tendermint", app_url="https://dl.example.org/glitter"),
            poll=PollConfig(grace_seconds=0, interval_seconds=0),
        )
        self.chain = chain or FakeChain()
        self.systemd = systemd or FakeSystemd()
        self.downloader = downloader or FakeDownloader()
        self.host = host or FakeHost()
        self.echoed = []
        self.capture = Capture()
        self.toolbox = Toolbox(
            systemd=self.systemd,
            downloader=self.downloader,
            host=self.host,
            keygen=KeyGenerator(),
            renderer=TemplateRenderer(),
            rpc_client=self.chain.rpc_client,
            admin_client=self.chain.admin_client,
            sleep=lambda s: None,
            echo=self.echoed.append,
        )

    def operate(self, op, args=None):
        return NodeOperator(self.cfg, self.toolbox, observers=[self.capture]).operate(op, args)

    def store(self):
        return FileStore.open(self.cfg.paths.store_path)

    @property
    def engine_config(self):
        return self.cfg.paths.engine_home / "config" / "config.toml"


def init_args(**kw):
    base = dict(seeds=SEEDS, moniker="node-a", index_mode="kv")
    base.update(kw)
    return NodeOpsArgs(**base)


# ----------------- init -----------------

def test_init_installs_everything(tmp_path):
    env = Env(tmp_path)
    assert env.operate(NodeOperation.INIT, init_args()) is None
    assert env.echoed[-1] == "Init node successfully"

    paths = env.cfg.paths
    store = env.store()
    assert store.get("init_done") == "true"
    assert store.get("moniker") == "node-a"
    assert store.get("seeds") == SEEDS
    assert len(store.get("node_id")) == 40
    assert store.get("pub_key_address") == store.get("pub_key_address").upper()

    # first seed drives the remote endpoints
    assert env.chain.rpc_urls == ["http://10.0.0.1:26657", "http://127.0.0.1:26657"]
    assert env.chain.admin_urls == ["http://10.0.0.1:26659"]
    assert env.downloader.urls == ["https://dl.example.org/tendermint", "https://dl.example.org/glitter"]

    assert 'mode = "full"' in env.engine_config.read_text()
    assert json.loads((paths.engine_home / "config" / "genesis.json").read_text())["chain_id"] == "glitter-test"
    assert (paths.engine_home / "config" / "node_key.json").exists()
    assert json.loads((paths.engine_home / "data" / "priv_validator_state.json").read_text())["height"] == "0"
    assert 'mode = "kv"' in (paths.app_home / "config.toml").read_text()
    assert (paths.systemd_dir / "tendermint.service").exists()
    assert (paths.systemd_dir / "glitter.service").exists()
    assert oct((paths.bin_dir / "tendermint").stat().st_mode & 0o777) == oct(0o755)

    assert env.systemd.calls == [("stop", "tendermint"), ("stop", "glitter"), ("daemon-reload",)]
    assert (paths.install_dir, "glitter", "glitter", True) in env.host.chowned

    summary = [e for e in env.capture.events if isinstance(e, PipelineSummary)][-1]
    assert (summary.ok, summary.failed, summary.skipped) == (15, 0, 0)


def test_init_twice_is_refused(tmp_path):
    env = Env(tmp_path)
    assert env.operate(NodeOperation.INIT, init_args()) is None

    err = env.operate(NodeOperation.INIT, init_args())
    assert err.step == "Check not initialized"
    assert isinstance(err.cause, PreconditionError)
    assert "Full node has already setup" in str(err)
    assert env.downloader.urls == ["https://dl.example.org/tendermint", "https://dl.example.org/glitter"]


@pytest.mark.parametrize(
    "args, step, needle",
    [
        (init_args(seeds=""), "Parse arguments", "at least provide one seed"),
        (init_args(seeds="no-at-sign:26656"), "Parse arguments", "invalid node IdHostPort"),
        (init_args(moniker=""), "Parse arguments", "moniker"),
        (init_args(index_mode="sql"), "Render glitter config", "invalid glitter index mode: sql"),
    ],
)
def test_init_rejects_bad_input(tmp_path, args, step, needle):
    env = Env(tmp_path)
    err = env.operate(NodeOperation.INIT, args)
    assert err.step == step
    assert needle in str(err)
    assert not env.cfg.paths.store_path.exists()


def test_init_cli_urls_override_config(tmp_path):
    env = Env(tmp_path)
    args = init_args(engine_binary_url="https://mirror/tm", app_binary_url="https://mirror/gl")
    assert env.operate(NodeOperation.INIT, args) is None
    assert env.downloader.urls == ["https://mirror/tm", "https://mirror/gl"]


def test_download_failure_skips_the_rest(tmp_path):
    env = Env(tmp_path, downloader=FakeDownloader(fail=True))
    err = env.operate(NodeOperation.INIT, init_args())

    assert err.step == "Download tendermint"
    assert isinstance(err.cause, DownloadError)
    assert env.echoed[-1] == str(err)
    skipped = [e.step for e in env.capture.events if isinstance(e, StepSkipped)]
    assert skipped[0] == "Download glitter"
    assert skipped[-1] == "Save config"
    assert env.systemd.calls == []


def test_missing_user_fails_first_step(tmp_path):
    env = Env(tmp_path, host=FakeHost(users_exist=False))
    err = env.operate(NodeOperation.INIT, init_args())
    assert err.step == "Check user and group"
    assert not env.cfg.paths.work_dir.exists()


def test_stop_errors_during_reset_are_warnings(tmp_path):
    env = Env(tmp_path, systemd=FakeSystemd(fail_stop=True))
    assert env.operate(NodeOperation.INIT, init_args()) is None
    warnings = [e.message for e in env.capture.events if isinstance(e, StepWarning)]
    assert any("could not stop tendermint" in w for w in warnings)


def test_existing_keys_are_reused(tmp_path):
    env = Env(tmp_path)
    assert env.operate(NodeOperation.INIT, init_args()) is None
    node_id = env.store().get("node_id")
    address = env.store().get("pub_key_address")

    # simulate a reset of the state file but not of the work dir
    env.cfg.paths.store_path.unlink()
    assert env.operate(NodeOperation.INIT, init_args()) is None

    assert env.store().get("node_id") == node_id
    assert env.store().get("pub_key_address") == address
    warnings = [e.message for e in env.capture.events if isinstance(e, StepWarning)]
    assert any("node_key already exist" in w for w in warnings)
    assert any("validator_key already exist" in w for w in warnings)


# ----------------- start / stop / info -----------------

def test_commands_require_init(tmp_path):
    env = Env(tmp_path)
    for op in (NodeOperation.START_FULLNODE, NodeOperation.START_VALIDATOR, NodeOperation.STOP):
        err = env.operate(op)
        assert str(err) == "failed to execute step [Check]: Please init node first"
    assert env.systemd.calls == []
    assert env.chain.rpc_urls == []


def test_show_info_before_init_hints(tmp_path):
    env = Env(tmp_path)
    err = env.operate(NodeOperation.SHOW_INFO)
    assert err is not None
    assert env.echoed[-1] == "Did you initialize the node?"


def test_start_fullnode(tmp_path):
    env = Env(tmp_path)
    env.operate(NodeOperation.INIT, init_args())
    env.engine_config.write_text("stale")
    env.systemd.calls.clear()

    assert env.operate(NodeOperation.START_FULLNODE) is None
    assert 'mode = "full"' in env.engine_config.read_text()
    assert env.systemd.calls == [("restart", "tendermint"), ("restart", "glitter")]
    assert env.echoed[-1] == "Start fullnode successfully"


def test_start_validator_waits_then_switches(tmp_path):
    env = Env(tmp_path)
    env.operate(NodeOperation.INIT, init_args())
    env.systemd.calls.clear()
    env.chain.update_validator(env.store().get("pub_key"))
    env.chain.errors = 3

    assert env.operate(NodeOperation.START_VALIDATOR) is None
    assert env.store().get("validator_stage") == "ok"
    assert 'mode = "validator"' in env.engine_config.read_text()
    assert env.systemd.calls == [("restart", "tendermint"), ("restart", "glitter")]
    assert env.chain.rpc_urls[-1] == "http://127.0.0.1:26657"


def test_start_validator_gives_up_after_error_budget(tmp_path):
    env = Env(tmp_path)
    env.operate(NodeOperation.INIT, init_args())
    env.systemd.calls.clear()
    env.chain.errors = 11

    err = env.operate(NodeOperation.START_VALIDATOR)
    assert err.step == "Waiting to receive a validator change event..."
    assert isinstance(err.cause, RPCError)
    assert env.systemd.calls == []
    assert 'mode = "full"' in env.engine_config.read_text()


def test_start_validator_timeout(tmp_path):
    env = Env(tmp_path)
    env.operate(NodeOperation.INIT, init_args())

    err = env.operate(NodeOperation.START_VALIDATOR, NodeOpsArgs(poll_timeout=0))
    assert "not in the validator set" in str(err)


def test_stop(tmp_path):
    env = Env(tmp_path)
    env.operate(NodeOperation.INIT, init_args())
    env.systemd.calls.clear()
    assert env.operate(NodeOperation.STOP) is None
    assert env.systemd.calls == [("stop", "tendermint"), ("stop", "glitter")]
    assert env.echoed[-1] == "Stop node successfully"


def test_show_node_info(tmp_path):
    env = Env(tmp_path)
    env.operate(NodeOperation.INIT, init_args())
    store = env.store()

    assert env.operate(NodeOperation.SHOW_INFO) is None
    report = env.echoed[-1]
    assert f"NodeID:\t\t{store.get('node_id')}" in report
    assert "Moniker:\tnode-a" in report
    assert f"Address:\t{store.get('pub_key_address')}" in report
    assert "Tendermint Status: active" in report


# ----------------- setup shortcuts -----------------

def test_setup_fullnode(tmp_path):
    env = Env(tmp_path)
    assert env.operate(NodeOperation.SETUP_FULLNODE, init_args()) is None
    assert env.systemd.calls[-2:] == [("start", "tendermint"), ("start", "glitter")]
    assert env.echoed[-1] == "Setup fullnode successfully"


def test_setup_validator_end_to_end(tmp_path):
    env = Env(tmp_path)
    assert env.operate(NodeOperation.SETUP_VALIDATOR, init_args()) is None

    store = env.store()
    assert env.chain.admin_calls == [(store.get("pub_key"), 1)]
    assert store.get("validator_stage") == "ok"
    assert 'mode = "validator"' in env.engine_config.read_text()
    assert env.systemd.calls == [
        ("stop", "tendermint"),
        ("stop", "glitter"),
        ("daemon-reload",),
        ("start", "tendermint"),
        ("start", "glitter"),
        ("stop", "tendermint"),
        ("restart", "tendermint"),
    ]
    assert env.echoed[-1] == "Setup validator successfully"


# ----------------- store / mode / signals -----------------

def test_corrupt_state_file_is_a_step_failure(tmp_path):
    env = Env(tmp_path)
    env.cfg.paths.store_path.parent.mkdir(parents=True)
    env.cfg.paths.store_path.write_bytes(b"\xff\xfe")

    err = env.operate(NodeOperation.STOP)
    assert err.step == "Open state store"
    assert isinstance(err.cause, StoreError)
    assert env.systemd.calls == []


def test_switch_steps_record_mode(tmp_path):
    env = Env(tmp_path)
    assert env.operate(NodeOperation.INIT, init_args()) is None

    catalog = OperationCatalog(env.cfg, env.toolbox, EventBus([]), {})
    ctx = PipelineContext()
    assert ctx.mode == ""

    catalog.switch_to_validator(ctx)
    assert ctx.mode == "validator"
    assert 'mode = "validator"' in env.engine_config.read_text()

    catalog.switch_to_fullnode(ctx)
    assert ctx.mode == "full"
    assert 'mode = "full"' in env.engine_config.read_text()


class SignalSpyChain(FakeChain):
    def validators(self):
        self.sigint_during_poll = signal.getsignal(signal.SIGINT)
        return super().validators()


def test_signal_handlers_only_cover_the_validator_wait(tmp_path):
    env = Env(tmp_path, chain=SignalSpyChain())
    env.operate(NodeOperation.INIT, init_args())
    env.chain.update_validator(env.store().get("pub_key"))

    before = signal.getsignal(signal.SIGINT)
    assert env.operate(NodeOperation.START_VALIDATOR) is None

    assert env.chain.sigint_during_poll is not before
    assert signal.getsignal(signal.SIGINT) is before
