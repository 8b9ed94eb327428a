"""Labels, roles and well-known paths shared by providers and actions."""

# DefaultClusterName is the cluster name used when none is given
DEFAULT_CLUSTER_NAME = "kind"

# container labels set on every node by the cluster tool
CLUSTER_LABEL_KEY = "io.x-k8s.kind.cluster"
NODE_ROLE_LABEL_KEY = "io.x-k8s.kind.role"

# node role label values
CONTROL_PLANE_NODE_ROLE_VALUE = "control-plane"
KRUSTLET_NODE_ROLE_VALUE = "krustlet"
EXTERNAL_LOAD_BALANCER_NODE_ROLE_VALUE = "external-load-balancer"

API_SERVER_PORT = 6443

ADMIN_KUBECONFIG_PATH = "/etc/kubernetes/admin.conf"
NODE_KUBECONFIG_PATH = "/etc/kubernetes/kubeconfig"
NODE_BOOTSTRAP_KUBECONFIG_PATH = "/etc/kubernetes/bootstrap-kubelet.conf"
GENERATED_BOOTSTRAP_KUBECONFIG_PATH = "/root/.krustlet/config/bootstrap.conf"
