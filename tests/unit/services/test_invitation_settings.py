import pytest
from pydantic import ValidationError

from config import ApplicationConfig
from src.app.services.invitation_settings import InvitationSettings
from src.domain.entities import NotificationKind


def test_defaults():
    settings = InvitationSettings()

    assert settings.expiration_enabled
    assert settings.expiration_days == 7
    assert settings.reminder_thresholds == [3, 5]
    assert settings.max_reminders == 2
    assert settings.notification_template(NotificationKind.invitation) == "invitation_sent"


def test_thresholds_are_sorted():
    settings = InvitationSettings(reminder_thresholds=[7, 1, 3])

    assert settings.reminder_thresholds == [1, 3, 7]


@pytest.mark.parametrize("thresholds", [[0, 3], [-1]])
def test_thresholds_must_be_positive(thresholds):
    with pytest.raises(ValidationError):
        InvitationSettings(reminder_thresholds=thresholds)


def test_negative_max_reminders_is_rejected():
    with pytest.raises(ValidationError):
        InvitationSettings(max_reminders=-1)


def test_null_template_disables_kind_and_missing_kinds_use_defaults():
    settings = InvitationSettings(notifications={"reminder": None})

    assert settings.notification_template(NotificationKind.reminder) is None
    assert settings.notification_template(NotificationKind.accepted) == "invitation_accepted"


def test_from_config_reads_application_config():
    settings = InvitationSettings.from_config(ApplicationConfig)

    assert settings.expiration_days == ApplicationConfig.INVITATION_EXPIRATION_DAYS
    assert settings.invitable_types == ApplicationConfig.INVITABLE_TYPES
