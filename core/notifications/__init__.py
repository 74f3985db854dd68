"""
Multi-channel notification delivery (mail, SMS, push, in-app).

Typical use from a view or service::

    from core.notifications import notify
    from core.notifications.events import AssessmentValidated

    notify(assessment_owner, AssessmentValidated(assessment, clinician_notes=notes))
"""
from .dispatcher import deliver, notify, notify_many

__all__ = ['deliver', 'notify', 'notify_many']
