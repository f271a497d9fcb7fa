"""
Tests for Kubernetes object helpers
"""

from datetime import timedelta

import pytest
from autoscaler_estimators import kube_util


class TestQuantities:
    """Test quantity arithmetic"""

    def test_milli_value(self):
        assert kube_util.milli_value('500m') == 500
        assert kube_util.milli_value('2') == 2000
        assert kube_util.milli_value('1.5') == 1500
        assert kube_util.milli_value(0) == 0

    def test_milli_value_rounds_up(self):
        # 1 nanocore is less than a millicore
        assert kube_util.milli_value('1n') == 1

    def test_value(self):
        assert kube_util.value('1Gi') == 1024 ** 3
        assert kube_util.value('512Mi') == 512 * 1024 ** 2
        assert kube_util.value('1G') == 1000 ** 3
        assert kube_util.value('100') == 100


class TestInstanceType:
    """Test instance type resolution"""

    def test_stable_label_wins(self):
        labels = {
            kube_util.LABEL_INSTANCE_TYPE_STABLE: 'n1-standard-4',
            kube_util.LABEL_INSTANCE_TYPE_LEGACY: 'n1-standard-2',
        }
        assert kube_util.get_instance_type_from_labels(labels) == 'n1-standard-4'

    def test_legacy_label_fallback(self):
        labels = {kube_util.LABEL_INSTANCE_TYPE_LEGACY: 'e2-medium'}
        assert kube_util.get_instance_type_from_labels(labels) == 'e2-medium'

    def test_missing(self):
        assert kube_util.get_instance_type_from_labels({}) is None
        assert kube_util.get_instance_type_from_labels(None) is None


class TestPreemptible:
    """Test preemptible / spot detection"""

    @pytest.mark.parametrize('labels,expected', [
        ({kube_util.PREEMPTIBLE_LABEL: 'true'}, True),
        ({kube_util.SPOT_LABEL: 'true'}, True),
        ({kube_util.PREEMPTIBLE_LABEL: 'false'}, False),
        ({kube_util.SPOT_LABEL: 'True'}, False),
        ({}, False),
        (None, False),
    ])
    def test_has_preemptible_pricing(self, make_node, labels, expected):
        assert kube_util.has_preemptible_pricing(make_node(labels=labels)) is expected


class TestNodeHasGpu:
    """Test GPU detection"""

    def test_gpu_label(self, make_node):
        node = make_node(labels={kube_util.GPU_LABEL: 'nvidia-tesla-t4'}, capacity={'cpu': '4'})
        assert kube_util.node_has_gpu(kube_util.GPU_LABEL, node)

    def test_gpu_capacity(self, make_node):
        node = make_node(capacity={'cpu': '4', kube_util.RESOURCE_NVIDIA_GPU: '1'})
        assert kube_util.node_has_gpu(kube_util.GPU_LABEL, node)

    def test_zero_gpu_capacity(self, make_node):
        node = make_node(capacity={'cpu': '4', kube_util.RESOURCE_NVIDIA_GPU: '0'})
        assert not kube_util.node_has_gpu(kube_util.GPU_LABEL, node)

    def test_other_label_key(self, make_node):
        node = make_node(labels={'accelerator': 'a100'}, capacity={'cpu': '4'})
        assert not kube_util.node_has_gpu(kube_util.GPU_LABEL, node)
        assert kube_util.node_has_gpu('accelerator', node)


class TestPodPredicates:
    """Test pod classification predicates"""

    def test_daemonset_owner(self, make_pod):
        assert kube_util.is_daemonset_pod(make_pod(owner_kind='DaemonSet'))
        assert not kube_util.is_daemonset_pod(make_pod(owner_kind='ReplicaSet'))
        assert not kube_util.is_daemonset_pod(make_pod())

    def test_daemonset_annotation(self, make_pod):
        pod = make_pod(annotations={kube_util.DAEMONSET_POD_ANNOTATION: 'true'})
        assert kube_util.is_daemonset_pod(pod)

    def test_mirror_pod(self, make_pod):
        assert kube_util.is_mirror_pod(make_pod(annotations={kube_util.MIRROR_POD_ANNOTATION: 'abc'}))
        assert not kube_util.is_mirror_pod(make_pod(annotations={'other': 'x'}))

    def test_not_deleted_is_not_long_terminating(self, make_pod, now):
        assert not kube_util.is_pod_long_terminating(make_pod(), now)

    def test_long_terminating_default_grace_period(self, make_pod, now):
        # default grace period 30s + 30s margin
        recent = make_pod(deletion_timestamp=now - timedelta(seconds=59))
        old = make_pod(deletion_timestamp=now - timedelta(seconds=61))
        assert not kube_util.is_pod_long_terminating(recent, now)
        assert kube_util.is_pod_long_terminating(old, now)

    def test_long_terminating_custom_grace_period(self, make_pod, now):
        pod = make_pod(deletion_timestamp=now - timedelta(minutes=5), grace_period=600)
        assert not kube_util.is_pod_long_terminating(pod, now)
        pod = make_pod(deletion_timestamp=now - timedelta(minutes=11), grace_period=600)
        assert kube_util.is_pod_long_terminating(pod, now)
