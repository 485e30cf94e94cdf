"""
Meeting request state machine

Lifecycle of a proposed one-on-one meeting between two participants:

    pending --(target)--> accepted --(requester)--> scheduled --(target)--> confirmed
        \\--(target)--> declined             ^            |
                                            |        (target)
                                       (requester)        v
                                            \\---- reschedule_requested

Every transition checks (status, caller is requester or target) before any
write and raises TransitionError otherwise. There is no optimistic locking:
when both sides act at once the last write wins.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from meetspark.database import database
from meetspark.models.meeting_request import (
    MeetingRequest, PENDING, ACCEPTED, DECLINED, SCHEDULED, RESCHEDULE_REQUESTED, CONFIRMED,
    ACTIVE_STATUSES,
)
from meetspark.models.meeting_message import MeetingMessage
from meetspark.models.registration import Registration

logger = logging.getLogger(__name__)

LOCATION_OPTIONS = {
    'coffee_spot': 'Coffee Spot',
    'lobby': 'Lobby',
    'main_floor': 'Main Floor',
}

TIME_SLOTS = [f"{hour:02d}:{minute:02d}" for hour in range(9, 18) for minute in (0, 30)]

# Actions allowed per status for each side of the meeting
REQUESTER = 'requester'
TARGET = 'target'

TRANSITIONS = {
    (PENDING, TARGET): {'accept': ACCEPTED, 'decline': DECLINED},
    (ACCEPTED, REQUESTER): {'schedule': SCHEDULED},
    (SCHEDULED, TARGET): {'confirm': CONFIRMED, 'request_reschedule': RESCHEDULE_REQUESTED},
    (RESCHEDULE_REQUESTED, REQUESTER): {'propose_new_time': SCHEDULED},
}


class TransitionError(Exception):
    """Raised when an actor attempts a transition that is not offered to them"""
    pass


def side_of(is_requester):
    return REQUESTER if is_requester else TARGET


def allowed_actions(status, is_requester):
    """Actions offered to a caller; depends only on status and side"""
    return sorted(TRANSITIONS.get((status, side_of(is_requester)), {}).keys())


def _actor_side(request, actor_id):
    if not request.is_participant(actor_id):
        raise TransitionError("Only the two participants of a meeting can change it.")
    return request.is_requester(actor_id)


def _check_transition(request, actor_id, action):
    is_requester = _actor_side(request, actor_id)
    new_status = TRANSITIONS.get((request.status, side_of(is_requester)), {}).get(action)
    if new_status is None:
        raise TransitionError(
            f"Cannot {action.replace('_', ' ')} a {request.status.replace('_', ' ')} meeting as the {side_of(is_requester)}.")
    return new_status


def _apply(request, new_status, **fields):
    """Single best-effort update of the request row"""
    previous = request.status
    for key, value in fields.items():
        setattr(request, key, value)
    request.status = new_status
    request.updated_at = datetime.now()
    with database.atomic():
        request.save()
    logger.info(f"Meeting request {request.id}: {previous} -> {new_status}")
    return request


def optional_text(value, label):
    """Stripped text or None; anything but a string is rejected"""
    if value is None:
        return None
    if not isinstance(value, str):
        raise TransitionError(f"{label} must be text.")
    return value.strip() or None


def parse_meeting_date(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), '%Y-%m-%d').date()
    except ValueError:
        raise TransitionError(f"Invalid meeting date: {value}. Use YYYY-MM-DD.")


def validate_booking(meeting_date, meeting_time, meeting_location):
    """Date, time slot and location are required together"""
    if not meeting_date or not meeting_time or not meeting_location:
        raise TransitionError("Select a date, time, and location for the meeting.")
    if not isinstance(meeting_time, str) or not isinstance(meeting_location, str):
        raise TransitionError("Meeting time and location must be text.")
    if not isinstance(meeting_date, (str, date)):
        raise TransitionError(f"Invalid meeting date: {meeting_date}. Use YYYY-MM-DD.")
    if meeting_time not in TIME_SLOTS:
        raise TransitionError(f"Meeting time must be a half-hour slot between {TIME_SLOTS[0]} and {TIME_SLOTS[-1]}.")
    if meeting_location not in LOCATION_OPTIONS:
        raise TransitionError(f"Meeting location must be one of: {', '.join(LOCATION_OPTIONS)}.")
    return parse_meeting_date(meeting_date), meeting_time, meeting_location


# Transitions

def propose_meeting(event, requester_id, target_id, message=None, is_ai_suggested=False):
    """Create a pending request from requester to target"""
    if requester_id == target_id:
        raise TransitionError("You cannot request a meeting with yourself.")

    participants = {r.id: r for r in Registration.select().where(
        (Registration.id.in_([requester_id, target_id])) & (Registration.event == event))}
    if requester_id not in participants or target_id not in participants:
        raise TransitionError("Both participants must be registered for this event.")
    if find_active_request(event, requester_id, target_id):
        raise TransitionError(f"You already have an open meeting request with {participants[target_id].name}.")

    message = optional_text(message, 'Message')
    request = MeetingRequest.create(
        event=event,
        requester=requester_id,
        target=target_id,
        message=message,
        is_ai_suggested=is_ai_suggested,
    )
    logger.info(f"Meeting request {request.id} created: {requester_id} -> {target_id} (event {event.id})")
    return request


def accept_request(request, actor_id):
    return _apply(request, _check_transition(request, actor_id, 'accept'))


def decline_request(request, actor_id):
    return _apply(request, _check_transition(request, actor_id, 'decline'))


def schedule_meeting(request, actor_id, meeting_date, meeting_time, meeting_location, message=None):
    """Requester proposes date, time and place for an accepted request"""
    new_status = _check_transition(request, actor_id, 'schedule')
    meeting_date, meeting_time, meeting_location = validate_booking(meeting_date, meeting_time, meeting_location)
    return _apply(request, new_status,
                  meeting_date=meeting_date,
                  meeting_time=meeting_time,
                  meeting_location=meeting_location,
                  message=optional_text(message, 'Message') or request.message)


def confirm_schedule(request, actor_id):
    """Target accepts the proposed slot as-is"""
    return _apply(request, _check_transition(request, actor_id, 'confirm'))


def request_reschedule(request, actor_id, reason):
    """Target turns down the proposed slot; a reason is required"""
    new_status = _check_transition(request, actor_id, 'request_reschedule')
    reason = optional_text(reason, 'Reschedule reason')
    if not reason:
        raise TransitionError("Let them know why you need to reschedule.")
    return _apply(request, new_status, reschedule_message=reason)


def propose_new_time(request, actor_id, meeting_date, meeting_time, meeting_location, message=None):
    """Requester answers a reschedule request with a new slot"""
    new_status = _check_transition(request, actor_id, 'propose_new_time')
    meeting_date, meeting_time, meeting_location = validate_booking(meeting_date, meeting_time, meeting_location)
    return _apply(request, new_status,
                  meeting_date=meeting_date,
                  meeting_time=meeting_time,
                  meeting_location=meeting_location,
                  message=optional_text(message, 'Message') or request.message,
                  reschedule_message=None)


def perform_action(request, actor_id, action, **params):
    """Dispatch a named transition with its parameters"""
    if action == 'accept':
        return accept_request(request, actor_id)
    if action == 'decline':
        return decline_request(request, actor_id)
    if action == 'schedule':
        return schedule_meeting(request, actor_id, params.get('meeting_date'), params.get('meeting_time'),
                                params.get('meeting_location'), params.get('message'))
    if action == 'confirm':
        return confirm_schedule(request, actor_id)
    if action == 'request_reschedule':
        return request_reschedule(request, actor_id, params.get('reschedule_message'))
    if action == 'propose_new_time':
        return propose_new_time(request, actor_id, params.get('meeting_date'), params.get('meeting_time'),
                                params.get('meeting_location'), params.get('message'))
    raise TransitionError(f"Unknown action: {action}")


# Queries

def find_active_request(event, first_id, second_id):
    """Active request between two participants in either direction, if any"""
    pair = (((MeetingRequest.requester == first_id) & (MeetingRequest.target == second_id)) |
            ((MeetingRequest.requester == second_id) & (MeetingRequest.target == first_id)))
    return (MeetingRequest.select()
            .where((MeetingRequest.event == event) & pair & (MeetingRequest.status.in_(ACTIVE_STATUSES)))
            .order_by(MeetingRequest.created_at.desc())
            .first())


@dataclass
class RequestsOverview:
    """A participant's requests grouped the way the requests list shows them"""
    received: list = field(default_factory=list)
    sent: list = field(default_factory=list)

    @property
    def all(self):
        return self.received + self.sent

    @property
    def active(self):
        return [r for r in self.all if r.status in (ACCEPTED, SCHEDULED, RESCHEDULE_REQUESTED, CONFIRMED)]

    @property
    def pending_received(self):
        return [r for r in self.received if r.status == PENDING]

    @property
    def pending_sent(self):
        return [r for r in self.sent if r.status == PENDING]

    @property
    def declined(self):
        return [r for r in self.all if r.status == DECLINED]


def list_requests(event, participant_id):
    base = MeetingRequest.select().where(MeetingRequest.event == event).order_by(
        MeetingRequest.created_at.desc(), MeetingRequest.id.desc())
    return RequestsOverview(
        received=list(base.where(MeetingRequest.target == participant_id)),
        sent=list(base.where(MeetingRequest.requester == participant_id)),
    )


# Chat

def send_message(request, sender_id, text):
    """Append a chat message from one of the two participants"""
    if not request.is_participant(sender_id):
        raise TransitionError("Only the two participants of a meeting can chat in it.")
    if request.status in (PENDING, DECLINED):
        raise TransitionError("Chat opens once the meeting request is accepted.")
    text = optional_text(text, 'Message')
    if not text:
        raise TransitionError("Message cannot be empty.")
    return MeetingMessage.create(meeting_request=request, sender=sender_id, message=text)


def list_messages(request):
    return list(MeetingMessage.select()
                .where(MeetingMessage.meeting_request == request)
                .order_by(MeetingMessage.created_at, MeetingMessage.id))


# Booking card view models, one per (status, side)

@dataclass
class BookingDetails:
    meeting_date: Optional[str]
    meeting_time: Optional[str]
    meeting_location: Optional[str]
    location_label: Optional[str]


@dataclass
class BookingView:
    kind: str
    status: str
    is_requester: bool
    other_name: str
    actions: list = field(default_factory=list)


@dataclass
class AwaitingSchedule(BookingView):
    """Target waits for the requester to pick a slot"""


@dataclass
class ScheduleForm(BookingView):
    """Requester picks date, time and location"""
    time_slots: list = field(default_factory=lambda: list(TIME_SLOTS))
    locations: dict = field(default_factory=lambda: dict(LOCATION_OPTIONS))


@dataclass
class RespondToSchedule(BookingView):
    """Target confirms the slot or asks for another one"""
    booking: Optional[BookingDetails] = None


@dataclass
class AwaitingResponse(BookingView):
    """Requester waits for the target to answer the proposed slot"""
    booking: Optional[BookingDetails] = None


@dataclass
class RescheduleForm(BookingView):
    """Requester proposes a new slot, seeded with the reschedule reason"""
    reschedule_message: Optional[str] = None
    booking: Optional[BookingDetails] = None
    time_slots: list = field(default_factory=lambda: list(TIME_SLOTS))
    locations: dict = field(default_factory=lambda: dict(LOCATION_OPTIONS))


@dataclass
class AwaitingNewTime(BookingView):
    """Target waits for the requester's new slot"""
    reschedule_message: Optional[str] = None


@dataclass
class Confirmed(BookingView):
    """Final details, identical for both sides"""
    booking: Optional[BookingDetails] = None
    how_to_find_me: Optional[str] = None


@dataclass
class PendingEntry(BookingView):
    """Handled in the requests list: accept/decline for the target"""


@dataclass
class DeclinedEntry(BookingView):
    """Minimised terminal entry in the requests list"""


def booking_details(request):
    return BookingDetails(
        meeting_date=request.meeting_date.isoformat() if request.meeting_date else None,
        meeting_time=request.meeting_time,
        meeting_location=request.meeting_location,
        location_label=LOCATION_OPTIONS.get(request.meeting_location),
    )


VIEW_TABLE = {
    (PENDING, True): (PendingEntry, 'pending-sent'),
    (PENDING, False): (PendingEntry, 'pending-received'),
    (DECLINED, True): (DeclinedEntry, 'declined'),
    (DECLINED, False): (DeclinedEntry, 'declined'),
    (ACCEPTED, True): (ScheduleForm, 'schedule-form'),
    (ACCEPTED, False): (AwaitingSchedule, 'awaiting-schedule'),
    (SCHEDULED, True): (AwaitingResponse, 'awaiting-response'),
    (SCHEDULED, False): (RespondToSchedule, 'respond-to-schedule'),
    (RESCHEDULE_REQUESTED, True): (RescheduleForm, 'reschedule-form'),
    (RESCHEDULE_REQUESTED, False): (AwaitingNewTime, 'awaiting-new-time'),
    (CONFIRMED, True): (Confirmed, 'confirmed'),
    (CONFIRMED, False): (Confirmed, 'confirmed'),
}


def booking_view(request, viewer_id, other_participant):
    """
    Pure mapping of (status, viewer side) to the view model the booking card
    renders. No storage access; other_participant is passed in.
    """
    if not request.is_participant(viewer_id):
        raise TransitionError("Only the two participants of a meeting can view it.")
    is_requester = request.is_requester(viewer_id)
    try:
        view_class, kind = VIEW_TABLE[(request.status, is_requester)]
    except KeyError:
        raise TransitionError(f"Unknown meeting status: {request.status}")

    common = dict(
        kind=kind,
        status=request.status,
        is_requester=is_requester,
        other_name=other_participant.name,
        actions=allowed_actions(request.status, is_requester),
    )
    if view_class in (RespondToSchedule, AwaitingResponse):
        return view_class(booking=booking_details(request), **common)
    if view_class is RescheduleForm:
        return view_class(reschedule_message=request.reschedule_message, booking=booking_details(request), **common)
    if view_class is AwaitingNewTime:
        return view_class(reschedule_message=request.reschedule_message, **common)
    if view_class is Confirmed:
        return view_class(booking=booking_details(request), how_to_find_me=other_participant.how_to_find_me, **common)
    return view_class(**common)
