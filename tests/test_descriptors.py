"""
Unit tests: field descriptors parsed from the backend payloads.
"""
from decimal import Decimal

import pytest

from registrations.descriptors import (FieldDescriptor, FieldDescriptorStore, FieldKind,
                                       RegistrationCategory)

from conftest import make_dynamic_field, make_slab


class TestAdditionalFields:

    def test_known_types_map_to_kinds(self):
        for raw, kind in (('textbox', FieldKind.TEXT_INPUT), ('date', FieldKind.DATE),
                          ('radio', FieldKind.RADIO), ('checkbox', FieldKind.CHECKBOX_GROUP),
                          ('upload', FieldKind.FILE_INPUT)):
            descriptor = FieldDescriptor.from_additional_field({'id': 1, 'type': raw, 'label': 'X'})
            assert descriptor.kind == kind
            assert descriptor.raw_kind == raw

    def test_missing_required_flag_means_required(self):
        descriptor = FieldDescriptor.from_additional_field({'id': 3, 'type': 'textbox', 'label': 'Badge Name'})
        assert descriptor.required is True

    def test_explicit_required_flag_wins(self):
        descriptor = FieldDescriptor.from_additional_field(
            {'id': 3, 'type': 'textbox', 'label': 'Notes', 'required': False})
        assert descriptor.required is False

    def test_option_objects_become_labels(self):
        descriptor = FieldDescriptor.from_additional_field({
            'id': 7, 'type': 'radio', 'label': 'Shirt',
            'options': [{'id': 1, 'label': 'S'}, {'id': 2, 'label': 'M'}],
        })
        assert descriptor.options == ('S', 'M')
        assert descriptor.id == '7'

    def test_upload_extensions_are_normalised(self):
        descriptor = FieldDescriptor.from_additional_field(
            {'id': 9, 'type': 'upload', 'label': 'ID Proof', 'extension': '.PDF, jpg'})
        assert descriptor.file_types == ('pdf', 'jpg')


class TestDynamicFields:

    def test_input_with_file_input_type_is_file(self):
        descriptor = FieldDescriptor.from_dynamic_field(
            make_dynamic_field('f1', 'input', 'Photo', inputTypes='file'))
        assert descriptor.kind == FieldKind.FILE_INPUT
        assert descriptor.is_file

    def test_unknown_type_keeps_raw_kind(self):
        descriptor = FieldDescriptor.from_dynamic_field(make_dynamic_field('f2', 'signature', 'Sign'))
        assert descriptor.kind is None
        assert descriptor.raw_kind == 'signature'

    def test_options_dropped_on_non_choice_kinds(self):
        descriptor = FieldDescriptor.from_dynamic_field(
            make_dynamic_field('f3', 'textarea', 'Bio', options=['a', 'b'], fileUploadTypes='pdf'))
        assert descriptor.options == ()
        assert descriptor.file_types == ()

    def test_selection_bounds_only_on_checkbox(self):
        checkbox = FieldDescriptor.from_dynamic_field(make_dynamic_field(
            'f4', 'checkbox', 'Workshops', options=['A', 'B'], minSelected='1', maxSelected=2))
        radio = FieldDescriptor.from_dynamic_field(make_dynamic_field(
            'f5', 'radio', 'Track', options=['A', 'B'], minSelected=1))
        assert (checkbox.min_selected, checkbox.max_selected) == (1, 2)
        assert radio.min_selected is None

    def test_underscore_id_is_accepted(self):
        descriptor = FieldDescriptor.from_dynamic_field({'_id': 'abc', 'type': 'date', 'label': 'DOB'})
        assert descriptor.id == 'abc'

    def test_descriptor_is_read_only(self):
        descriptor = FieldDescriptor.from_dynamic_field(make_dynamic_field('f6', 'input', 'City'))
        with pytest.raises(AttributeError):
            descriptor.required = True


class TestCategoriesAndStore:

    def test_slab_parsing(self):
        category = RegistrationCategory.from_slab(make_slab(
            fields=[{'id': 1, 'type': 'textbox', 'label': 'Badge Name'}]))
        assert category.id == 'slab-1'
        assert category.amount == Decimal('1500')
        assert category.accompany_amount == Decimal('500')
        assert len(category.active_fields) == 1

    def test_fields_ignored_without_additional_info(self):
        slab = make_slab(fields=[{'id': 1, 'type': 'textbox', 'label': 'Badge Name'}])
        slab['needAdditionalInfo'] = False
        assert RegistrationCategory.from_slab(slab).active_fields == ()

    def test_store_survives_session_serialisation(self):
        store = FieldDescriptorStore.from_api(
            'evt-1',
            [make_slab(fields=[{'id': 2, 'type': 'checkbox', 'label': 'Diet',
                                'options': [{'id': 1, 'label': 'Veg'}], 'minSelected': 1}])],
            [make_dynamic_field('f1', 'select', 'Track', options=['A', 'B'])],
        )
        restored = FieldDescriptorStore.from_dict(store.to_dict())

        assert restored.category('slab-1').active_fields == store.category('slab-1').active_fields
        assert restored.dynamic_fields == store.dynamic_fields
        assert restored.category('slab-1').amount == Decimal('1500')

    def test_unknown_category_is_none(self):
        store = FieldDescriptorStore.from_api('evt-1', [make_slab()], [])
        assert store.category('nope') is None
        assert store.category('') is None
