# registrations/descriptors.py
#
# Server-provided field definitions, normalised into one canonical shape.
#
# ├── FieldKind                  <-- the seven kinds the portal renders
# ├── FieldDescriptor            <-- one field (category-additional OR dynamic)
# ├── RegistrationCategory       <-- a priced "slab" with its own extra fields
# └── FieldDescriptorStore       <-- everything fetched for one event

import logging
from decimal import Decimal, InvalidOperation

logger = logging.getLogger(__name__)


class FieldKind:
    TEXT_INPUT = 'text-input'
    TEXT_AREA = 'text-area'
    SINGLE_SELECT = 'single-select'
    RADIO = 'radio'
    CHECKBOX_GROUP = 'checkbox-group'
    DATE = 'date'
    FILE_INPUT = 'file-input'

    ALL = (TEXT_INPUT, TEXT_AREA, SINGLE_SELECT, RADIO,
           CHECKBOX_GROUP, DATE, FILE_INPUT)


CHOICE_KINDS = (FieldKind.SINGLE_SELECT, FieldKind.RADIO, FieldKind.CHECKBOX_GROUP)

# Category "additional" fields use the old vocabulary
ADDITIONAL_TYPE_MAP = {
    'textbox': FieldKind.TEXT_INPUT,
    'date': FieldKind.DATE,
    'radio': FieldKind.RADIO,
    'checkbox': FieldKind.CHECKBOX_GROUP,
    'upload': FieldKind.FILE_INPUT,
}

# Dynamic form fields use the form-builder vocabulary
DYNAMIC_TYPE_MAP = {
    'input': FieldKind.TEXT_INPUT,
    'textarea': FieldKind.TEXT_AREA,
    'select': FieldKind.SINGLE_SELECT,
    'radio': FieldKind.RADIO,
    'checkbox': FieldKind.CHECKBOX_GROUP,
    'date': FieldKind.DATE,
    'file': FieldKind.FILE_INPUT,
}


def _split_extensions(value):
    """'.pdf, PNG,jpg' -> ('pdf', 'png', 'jpg')"""
    if not value:
        return ()
    if isinstance(value, (list, tuple)):
        parts = value
    else:
        parts = str(value).split(',')
    cleaned = []
    for part in parts:
        ext = str(part).strip().lower().lstrip('.')
        if ext and ext != '*':
            cleaned.append(ext)
    return tuple(cleaned)


def _to_int(value):
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class FieldDescriptor:
    """
    Read-only description of one field.

    `kind` is None when the server sent a type we do not know; `raw_kind`
    keeps what it sent so the answer can still be echoed back.
    Options only exist on choice kinds and file constraints only on
    file-input; anything else the server sent for them is dropped.
    """

    def __init__(self, id, kind, label, required=False, placeholder='', description='',
                 options=(), min_selected=None, max_selected=None,
                 file_types=(), max_file_size_mb=None, raw_kind=None):
        self.id = str(id)
        self.kind = kind if kind in FieldKind.ALL else None
        self.raw_kind = raw_kind or kind
        self.label = label or self.id
        self.required = bool(required)
        self.placeholder = placeholder or ''
        self.description = description or ''

        is_choice = self.kind in CHOICE_KINDS
        self.options = tuple(str(o) for o in options) if is_choice else ()

        is_checkbox = self.kind == FieldKind.CHECKBOX_GROUP
        self.min_selected = _to_int(min_selected) if is_checkbox else None
        self.max_selected = _to_int(max_selected) if is_checkbox else None

        is_file = self.kind == FieldKind.FILE_INPUT
        self.file_types = _split_extensions(file_types) if is_file else ()
        self.max_file_size_mb = _to_int(max_file_size_mb) if is_file else None

    def __setattr__(self, name, value):
        if getattr(self, '_frozen', False):
            raise AttributeError(f"FieldDescriptor is read-only ({name})")
        super().__setattr__(name, value)

    def __repr__(self):
        return f"<FieldDescriptor {self.id} {self.kind or self.raw_kind} '{self.label}'>"

    def __eq__(self, other):
        return isinstance(other, FieldDescriptor) and self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash((self.id, self.kind, self.raw_kind))

    @property
    def is_file(self):
        return self.kind == FieldKind.FILE_INPUT

    @property
    def is_checkbox(self):
        return self.kind == FieldKind.CHECKBOX_GROUP

    def signature(self):
        """Everything that changes the validation rule of this field."""
        return (self.id, self.kind, self.raw_kind, self.required, self.options,
                self.min_selected, self.max_selected)

    def to_dict(self):
        return {
            'id': self.id,
            'kind': self.kind,
            'raw_kind': self.raw_kind,
            'label': self.label,
            'required': self.required,
            'placeholder': self.placeholder,
            'description': self.description,
            'options': list(self.options),
            'min_selected': self.min_selected,
            'max_selected': self.max_selected,
            'file_types': list(self.file_types),
            'max_file_size_mb': self.max_file_size_mb,
        }

    @classmethod
    def from_dict(cls, data):
        return _freeze(cls(**data))

    # --- server shapes ---

    @classmethod
    def from_additional_field(cls, data):
        """
        Category additional field:
        {id, type: textbox|date|radio|checkbox|upload, label, extension?,
         options?: [{id, label}]}
        These usually carry no `required` flag, in which case every known
        type is mandatory.
        """
        raw_type = str(data.get('type') or '').strip().lower()
        kind = ADDITIONAL_TYPE_MAP.get(raw_type)
        options = []
        for option in data.get('options') or []:
            if isinstance(option, dict):
                options.append(option.get('label', ''))
            else:
                options.append(option)

        required = data.get('required')
        if required is None:
            required = kind in (FieldKind.TEXT_INPUT, FieldKind.DATE,
                                FieldKind.RADIO, FieldKind.FILE_INPUT,
                                FieldKind.CHECKBOX_GROUP)

        return _freeze(cls(
            id=data.get('id'),
            kind=kind,
            raw_kind=raw_type,
            label=data.get('label'),
            required=required,
            options=options,
            min_selected=data.get('minSelected'),
            max_selected=data.get('maxSelected'),
            file_types=data.get('extension'),
            max_file_size_mb=data.get('maxFileSize'),
        ))

    @classmethod
    def from_dynamic_field(cls, data):
        """
        Event dynamic form field:
        {id, type: input|textarea|select|radio|checkbox|date|file,
         inputTypes?, label, placeholder?, required, description?,
         options?, minSelected?, maxSelected?, fileUploadTypes?, maxFileSize?}
        """
        raw_type = str(data.get('type') or '').strip().lower()
        kind = DYNAMIC_TYPE_MAP.get(raw_type)
        if raw_type == 'input' and str(data.get('inputTypes') or '').lower() == 'file':
            kind = FieldKind.FILE_INPUT

        return _freeze(cls(
            id=data.get('id') or data.get('_id'),
            kind=kind,
            raw_kind=raw_type,
            label=data.get('label'),
            required=data.get('required', False),
            placeholder=data.get('placeholder'),
            description=data.get('description'),
            options=data.get('options') or [],
            min_selected=data.get('minSelected'),
            max_selected=data.get('maxSelected'),
            file_types=data.get('fileUploadTypes'),
            max_file_size_mb=data.get('maxFileSize'),
        ))


def _freeze(descriptor):
    object.__setattr__(descriptor, '_frozen', True)
    return descriptor


class RegistrationCategory:
    """
    A priced registration tier ("slab").
    Its additional fields only apply when `needs_additional_info` is set.
    """

    def __init__(self, id, name, amount, accompany_amount=None, start_date=None,
                 end_date=None, needs_additional_info=False, additional_fields=()):
        self.id = str(id)
        self.name = name or ''
        self.amount = _to_decimal(amount)
        self.accompany_amount = _to_decimal(accompany_amount)
        self.start_date = start_date
        self.end_date = end_date
        self.needs_additional_info = bool(needs_additional_info)
        self.additional_fields = tuple(additional_fields)

    def __repr__(self):
        return f"<RegistrationCategory {self.id} '{self.name}' {self.amount}>"

    @property
    def active_fields(self):
        if not self.needs_additional_info:
            return ()
        return self.additional_fields

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'amount': str(self.amount),
            'accompany_amount': str(self.accompany_amount),
            'start_date': self.start_date,
            'end_date': self.end_date,
            'needs_additional_info': self.needs_additional_info,
            'additional_fields': [f.to_dict() for f in self.additional_fields],
        }

    @classmethod
    def from_dict(cls, data):
        data = dict(data)
        data['additional_fields'] = [
            FieldDescriptor.from_dict(f) for f in data.get('additional_fields', [])]
        return cls(**data)

    @classmethod
    def from_slab(cls, data):
        fields = []
        for raw in data.get('additionalFields') or []:
            fields.append(FieldDescriptor.from_additional_field(raw))
        return cls(
            id=data.get('_id') or data.get('id'),
            name=data.get('slabName'),
            amount=data.get('amount'),
            accompany_amount=data.get('AccompanyAmount'),
            start_date=data.get('startDate'),
            end_date=data.get('endDate'),
            needs_additional_info=data.get('needAdditionalInfo', False),
            additional_fields=fields,
        )


def _to_decimal(value):
    if value in (None, ''):
        return Decimal('0')
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal('0')


class FieldDescriptorStore:
    """
    Read-only holder of the descriptors of one event: its categories and
    its dynamic form fields. Fetched once when the flow starts.
    """

    def __init__(self, event_id, categories=(), dynamic_fields=()):
        self.event_id = str(event_id)
        self.categories = tuple(categories)
        self.dynamic_fields = tuple(dynamic_fields)

    def category(self, category_id):
        if category_id in (None, ''):
            return None
        for category in self.categories:
            if category.id == str(category_id):
                return category
        return None

    def fields_for(self, category):
        """(category-additional fields, dynamic fields) for a selection."""
        additional = category.active_fields if category else ()
        return additional, self.dynamic_fields

    def to_dict(self):
        return {
            'event_id': self.event_id,
            'categories': [c.to_dict() for c in self.categories],
            'dynamic_fields': [f.to_dict() for f in self.dynamic_fields],
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            event_id=data['event_id'],
            categories=[RegistrationCategory.from_dict(c) for c in data.get('categories', [])],
            dynamic_fields=[FieldDescriptor.from_dict(f) for f in data.get('dynamic_fields', [])],
        )

    @classmethod
    def from_api(cls, event_id, slabs, form_fields):
        categories = []
        for slab in slabs or []:
            categories.append(RegistrationCategory.from_slab(slab))

        dynamic_fields = []
        for raw in form_fields or []:
            descriptor = FieldDescriptor.from_dynamic_field(raw)
            if descriptor.kind is None:
                logger.warning(
                    f"Event {event_id}: unknown field type '{descriptor.raw_kind}' on field {descriptor.id}")
            dynamic_fields.append(descriptor)

        return cls(event_id, categories, dynamic_fields)
