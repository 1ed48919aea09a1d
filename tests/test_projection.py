"""Tests for projecting model instances to items."""

import math

import numpy as np
import pytest

from platearrange.model import Model, ModelInstance, ModelObject
from platearrange.nesting.geometry import Box, scale_
from platearrange.nesting.projection import object_footprint, project_model_from_top


@pytest.fixture
def model():
    """Model with one box object and two instances."""
    m = Model()
    obj = m.add_object(ModelObject.box("block", 20, 10))
    obj.add_instance(ModelInstance(offset=(50.0, 60.0, 0.0), rotation=(0.0, 0.0, 0.3)))
    obj.add_instance(ModelInstance(offset=(-5.0, 0.0, 2.0)))
    return m


class TestObjectFootprint:
    """Tests for object_footprint."""

    def test_box_footprint(self, model):
        """The footprint is the scaled top view in local coordinates."""
        footprint = object_footprint(model.objects[0])

        assert Box.from_bounds(footprint.bounds) == Box(-scale_(10), -scale_(5), scale_(10), scale_(5))

    def test_clockwise(self, model):
        """Footprints are oriented clockwise."""
        assert not object_footprint(model.objects[0]).exterior.is_ccw

    def test_scaling_applied(self):
        """The first instance's scaling enters the footprint."""
        obj = ModelObject.box("block", 20, 10)
        obj.add_instance(ModelInstance(scaling_factor=(2.0, 1.0, 1.0)))

        footprint = object_footprint(obj)

        assert footprint.bounds[2] - footprint.bounds[0] == pytest.approx(scale_(40))

    def test_x_rotation_applied(self):
        """Tilting an object shows its height in the top view."""
        obj = ModelObject.box("block", 20, 10, 30)
        obj.add_instance(ModelInstance(rotation=(math.pi / 2, 0.0, 0.0)))

        footprint = object_footprint(obj)

        assert footprint.bounds[3] - footprint.bounds[1] == pytest.approx(scale_(30), abs=2)

    def test_z_rotation_ignored(self):
        """Z rotation is carried by the item, not the footprint."""
        obj = ModelObject.box("block", 20, 10)
        obj.add_instance(ModelInstance(rotation=(0.0, 0.0, 1.0)))

        footprint = object_footprint(obj)

        assert footprint.bounds[2] - footprint.bounds[0] == pytest.approx(scale_(20))

    def test_flat_object_is_degenerate(self):
        """Collinear vertices have no footprint."""
        obj = ModelObject("line", vertices=np.array([[0, 0, 0], [1, 0, 0], [2, 0, 5]]))
        obj.add_instance()

        assert object_footprint(obj).is_empty

    def test_no_instances(self):
        """Objects without instances have no footprint."""
        assert object_footprint(ModelObject.box("block", 10, 10)).is_empty


class TestProjectModelFromTop:
    """Tests for project_model_from_top."""

    def test_one_item_per_instance(self, model):
        """Every instance maps to an item in order."""
        shapemap = project_model_from_top(model)

        assert len(shapemap) == 2
        assert shapemap[0][0] is model.objects[0].instances[0]
        assert shapemap[1][0] is model.objects[0].instances[1]

    def test_item_pose(self, model):
        """Items carry the instance offset and Z rotation."""
        _, item = project_model_from_top(model)[0]

        assert item.translation == (scale_(50), scale_(60))
        assert item.rotation == pytest.approx(0.3)

    def test_instances_share_footprint(self, model):
        """Instances of one object share the shape."""
        shapemap = project_model_from_top(model)

        assert shapemap[0][1].shape.equals(shapemap[1][1].shape)

    def test_degenerate_skipped(self, model):
        """Degenerate objects are left out."""
        flat = model.add_object(ModelObject("flat", vertices=np.array([[0, 0, 0], [10, 0, 0]])))
        flat.add_instance()

        shapemap = project_model_from_top(model)

        assert len(shapemap) == 2
        assert all(inst is not flat.instances[0] for inst, _ in shapemap)

    def test_empty_model(self):
        """Test projecting an empty model."""
        assert project_model_from_top(Model()) == []
