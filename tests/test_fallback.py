"""Tests for cloud/local fallback tracking."""

from voicecart.fallback import (
    FallbackConfig,
    FallbackManager,
    ServiceMode,
    ServiceType,
)


class TestFallbackManager:
    """Tests for FallbackManager."""

    def test_starts_in_cloud_mode(self):
        manager = FallbackManager()
        assert manager.get_mode(ServiceType.EMOTION) == ServiceMode.CLOUD
        assert manager.should_use_local(ServiceType.EMOTION) is False

    def test_single_failure_stays_in_cloud(self):
        manager = FallbackManager()
        manager.report_failure(ServiceType.EMOTION, "timeout")

        status = manager.get_status(ServiceType.EMOTION)
        assert status.mode == ServiceMode.CLOUD
        assert status.consecutive_failures == 1
        assert status.last_error == "timeout"

    def test_success_resets_failures(self):
        manager = FallbackManager()
        manager.report_failure(ServiceType.EMOTION, "timeout")
        manager.report_success(ServiceType.EMOTION)

        assert manager.get_status(ServiceType.EMOTION).consecutive_failures == 0

    def test_threshold_switches_to_local(self):
        changes = []
        manager = FallbackManager(FallbackConfig(failure_threshold=2))
        manager.set_mode_change_callback(lambda st, mode: changes.append((st, mode)))

        manager.report_failure(ServiceType.SPEECH, "Error 1")
        mode = manager.report_failure(ServiceType.SPEECH, "Error 2")

        assert mode == ServiceMode.LOCAL
        assert manager.should_use_local(ServiceType.SPEECH) is True
        assert changes == [(ServiceType.SPEECH, ServiceMode.LOCAL)]

    def test_services_tracked_independently(self):
        manager = FallbackManager()
        manager.report_failure(ServiceType.SPEECH, "Error 1")
        manager.report_failure(ServiceType.SPEECH, "Error 2")

        assert manager.get_mode(ServiceType.SPEECH) == ServiceMode.LOCAL
        assert manager.get_mode(ServiceType.EMOTION) == ServiceMode.CLOUD

    def test_auto_recovers_after_local_uses(self):
        manager = FallbackManager(FallbackConfig(failure_threshold=2, recovery_threshold=3))
        manager.report_failure(ServiceType.EMOTION, "Error 1")
        manager.report_failure(ServiceType.EMOTION, "Error 2")

        manager.report_local_use(ServiceType.EMOTION)
        manager.report_local_use(ServiceType.EMOTION)
        assert manager.get_mode(ServiceType.EMOTION) == ServiceMode.LOCAL

        manager.report_local_use(ServiceType.EMOTION)
        status = manager.get_status(ServiceType.EMOTION)
        assert status.mode == ServiceMode.CLOUD
        assert status.consecutive_failures == 0

    def test_no_recovery_while_cloud_unavailable(self):
        manager = FallbackManager(FallbackConfig(recovery_threshold=1))
        manager.set_cloud_available(ServiceType.EMOTION, False)
        assert manager.get_mode(ServiceType.EMOTION) == ServiceMode.LOCAL

        manager.report_local_use(ServiceType.EMOTION)
        assert manager.should_use_local(ServiceType.EMOTION) is True

    def test_unavailable_without_local_path(self):
        manager = FallbackManager()
        manager.get_status(ServiceType.SPEECH).local_available = False

        manager.report_failure(ServiceType.SPEECH, "Error 1")
        mode = manager.report_failure(ServiceType.SPEECH, "Error 2")

        assert mode == ServiceMode.UNAVAILABLE

    def test_reset(self):
        manager = FallbackManager()
        manager.report_failure(ServiceType.EMOTION, "Error 1")
        manager.report_failure(ServiceType.EMOTION, "Error 2")
        manager.reset()

        assert manager.get_mode(ServiceType.EMOTION) == ServiceMode.CLOUD

    def test_summary(self):
        summary = FallbackManager().get_summary()
        assert set(summary) == {"emotion", "speech"}
        assert summary["emotion"]["mode"] == "cloud"
