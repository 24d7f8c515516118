from datetime import date, datetime, time
from typing import Literal

from pydantic import BaseModel, ValidationError, field_validator, model_validator

from consultancy.errors import BookingValidationError
from consultancy.scheduling.time_grid import DAY_END_TIME, OPEN_TIME, SlotPattern

MAX_DESCRIPTION_LENGTH = 600
SLOT_OFFSET_MESSAGE = 'Slot times must be local times without a UTC offset.'
CONSULTATION_TYPES = {
    'general': 'General Consultancy',
    'survey': 'Site/Land Survey',
    'registration': 'Property Registration',
}


class BookingSubmission(BaseModel):
    name: str
    email: str
    phone: str | None = None
    consultation_type: str = 'general'
    description: str
    slot: datetime

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name is required.')
        return normalized

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError('Email is required.')
        local_part, _, domain = normalized.partition('@')
        if not local_part or '.' not in domain:
            raise ValueError('Email address is not valid.')
        return normalized

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip().replace(' ', '').replace('-', '')
        if not normalized:
            return None

        digits = normalized[1:] if normalized.startswith('+') else normalized
        if not digits.isdigit() or not 7 <= len(digits) <= 15:
            raise ValueError('Phone number is not valid.')
        return normalized

    @field_validator('consultation_type')
    @classmethod
    def validate_consultation_type(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in CONSULTATION_TYPES:
            raise ValueError('Please select a consultation type.')
        return normalized

    @field_validator('description')
    @classmethod
    def validate_description(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Description is required.')
        if len(normalized) > MAX_DESCRIPTION_LENGTH:
            raise ValueError(f'Description must be {MAX_DESCRIPTION_LENGTH} characters or fewer.')
        return normalized

    @field_validator('slot')
    @classmethod
    def validate_slot(cls, value: datetime) -> datetime:
        # Slots are wall-clock times on the business calendar.
        if value.tzinfo is not None:
            raise ValueError(SLOT_OFFSET_MESSAGE)
        return value


class BulkBlockRequest(BaseModel):
    start_date: date
    end_date: date
    start_time: time = OPEN_TIME
    end_time: time = DAY_END_TIME
    pattern: SlotPattern = SlotPattern.DAILY

    @field_validator('pattern', mode='before')
    @classmethod
    def validate_pattern(cls, value):
        try:
            return SlotPattern.parse(value)
        except BookingValidationError as exc:
            raise ValueError(exc.detail) from exc

    @model_validator(mode='after')
    def validate_ranges(self) -> 'BulkBlockRequest':
        if self.end_date < self.start_date:
            raise ValueError('End date must be on or after the start date.')
        if self.end_time <= self.start_time:
            raise ValueError('End time must be after the start time.')
        if self.start_time < OPEN_TIME or self.end_time > DAY_END_TIME:
            raise ValueError('Times can only be blocked within business hours.')
        return self


class Actor(BaseModel):
    user_id: str
    role: Literal['admin', 'user'] = 'user'

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'


class PaymentRequest(BaseModel):
    booking_id: int
    amount: float
    payer_reference: str


class PaymentResult(BaseModel):
    success: bool
    transaction_id: str
    status_date: datetime | None = None


class NotificationMessage(BaseModel):
    recipient: str
    channel: Literal['sms', 'email']
    message: str
    subject: str | None = None


class BookingResponse(BaseModel):
    id: int
    slot: datetime
    contact_name: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    consultation_type: str | None = None
    description: str | None = None
    status: str
    payment_status: bool
    is_admin_block: bool
    deleted: bool
    created_at: datetime

    class Config:
        from_attributes = True


def parse_model(model: type[BaseModel], data) -> BaseModel:
    """Validate ``data`` into ``model``, raising BookingValidationError."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        messages = []
        for error in exc.errors():
            message = str(error['msg']).removeprefix('Value error, ')
            location = '.'.join(str(part) for part in error['loc'])
            messages.append(f'{location}: {message}' if location else message)
        raise BookingValidationError('; '.join(messages)) from exc
