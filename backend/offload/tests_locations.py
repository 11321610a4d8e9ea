"""
Unit Tests for the Location State Machine
=========================================
"""

from django.test import SimpleTestCase

from contracts.models import ObjectLocation
from offload.exceptions import InvalidTransition
from offload.services.locations import can_transition, push_target, resolve_target, validate_transition


class LocationStateMachineTests(SimpleTestCase):
    """Tests for allowed transitions and target resolution."""

    def test_local_only_can_move_to_duplicated_or_remote(self):
        self.assertTrue(can_transition(ObjectLocation.LOCAL_ONLY, ObjectLocation.DUPLICATED))
        self.assertTrue(can_transition(ObjectLocation.LOCAL_ONLY, ObjectLocation.REMOTE_ONLY))

    def test_duplicated_can_only_move_to_remote(self):
        self.assertTrue(can_transition(ObjectLocation.DUPLICATED, ObjectLocation.REMOTE_ONLY))
        self.assertFalse(can_transition(ObjectLocation.DUPLICATED, ObjectLocation.LOCAL_ONLY))

    def test_remote_only_is_terminal(self):
        for location in ObjectLocation:
            self.assertFalse(can_transition(ObjectLocation.REMOTE_ONLY, location))

    def test_no_self_transitions(self):
        for location in ObjectLocation:
            self.assertFalse(can_transition(location, location))

    def test_accepts_raw_database_values(self):
        self.assertTrue(can_transition(0, 1))

    def test_validate_transition_raises(self):
        with self.assertRaises(InvalidTransition):
            validate_transition(ObjectLocation.REMOTE_ONLY, ObjectLocation.DUPLICATED)

    def test_resolve_target(self):
        self.assertEqual(resolve_target(True, True), ObjectLocation.DUPLICATED)
        self.assertEqual(resolve_target(False, True), ObjectLocation.REMOTE_ONLY)
        self.assertEqual(resolve_target(True, False), ObjectLocation.LOCAL_ONLY)
        self.assertIsNone(resolve_target(False, False))

    def test_push_target(self):
        self.assertEqual(push_target(True), ObjectLocation.DUPLICATED)
        self.assertEqual(push_target(False), ObjectLocation.REMOTE_ONLY)
