"""In-memory stand-ins for the container engine and the clock."""

from k3s_harness.constants import K3S_KUBECONFIG_PATH, K3S_READY_LOG_MARKER
from k3s_harness.engine import EngineExec

K3S_KUBECONFIG = """\
apiVersion: v1
clusters:
- cluster:
    certificate-authority-data: LS0tLS1CRUdJTi0tLS0t
    server: https://127.0.0.1:6443
  name: default
contexts:
- context:
    cluster: default
    user: default
  name: default
current-context: default
kind: Config
preferences: {}
users:
- name: default
  user:
    client-certificate-data: LS0tLS1CRUdJTi0tLS0t
    client-key-data: LS0tLS1CRUdJTi0tLS0t
"""

FAKE_HOST_PORT = 51234


class FakeClock:
    """Manually advanced monotonic clock whose sleep moves time forward."""

    def __init__(self, start=1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeEngine:
    """In-memory ContainerEngine.

    Commands other than the kubeconfig read are answered from ``queue``
    (first in, first out) and then by ``responder``.
    """

    host = "127.0.0.1"

    def __init__(self, ready_after=1, kubeconfig=K3S_KUBECONFIG):
        self.ready_after = ready_after
        self.kubeconfig = kubeconfig
        self.status_value = "running"
        self.started = []
        self.stopped = []
        self.commands = []
        self.queue = []
        self.responder = lambda argv, stdin: EngineExec(0, "", "")
        self.log_reads = 0
        # container id -> name, for containers started and not yet stopped
        self.running = {}

    def start(self, image, *, name, command, ports=(), tmpfs=(), labels=None, privileged=False):
        self.started.append({
            "image": image,
            "name": name,
            "command": list(command),
            "ports": list(ports),
            "tmpfs": list(tmpfs),
            "labels": dict(labels or {}),
            "privileged": privileged,
        })
        container_id = f"cid-{len(self.started)}"
        self.running[container_id] = name
        return container_id

    def stop(self, container_id, timeout):
        self.stopped.append(container_id)
        self.running = {cid: name for cid, name in self.running.items() if container_id not in (cid, name)}

    def exec(self, container_id, argv, stdin=None):
        argv = list(argv)
        if argv == ["cat", K3S_KUBECONFIG_PATH]:
            return EngineExec(0, self.kubeconfig, "")
        self.commands.append((argv, stdin))
        if self.queue:
            return self.queue.pop(0)
        return self.responder(argv, stdin)

    def logs(self, container_id):
        self.log_reads += 1
        if self.log_reads >= self.ready_after:
            return f"starting k3s\n{K3S_READY_LOG_MARKER}\n"
        return "starting k3s\n"

    def status(self, container_id):
        return self.status_value

    def host_port(self, container_id, container_port):
        return FAKE_HOST_PORT

