import pytest

from layerstack import Document
from layerstack.api.mask_manager import MaskEditState, MaskManager
from layerstack.errors import LayerNotFound


@pytest.fixture
def manager(document: Document) -> MaskManager:
    return MaskManager(document)


def test_add_delete_mask(manager: MaskManager) -> None:
    background = manager.document[0]
    assert manager.add_mask(background.layer_id)
    assert background.mask.bbox == background.bbox
    assert background.mask.enabled
    assert background.mask.linked
    assert background.mask.get_value_at(0, 0) == 255
    assert not manager.add_mask(background.layer_id)

    assert manager.delete_mask(background.layer_id)
    assert background.mask is None
    assert not manager.delete_mask(background.layer_id)


def test_add_black_mask(manager: MaskManager) -> None:
    background = manager.document[0]
    manager.add_mask(background.layer_id, fill_white=False)
    assert background.mask.get_value_at(3, 3) == 0
    assert background.mask.background_color == 0


def test_unknown_layer(manager: MaskManager) -> None:
    with pytest.raises(LayerNotFound):
        manager.add_mask(-1)
    with pytest.raises(LayerNotFound):
        manager.enter_mask_edit_mode(-1)


def test_apply_mask(manager: MaskManager) -> None:
    red = manager.document[1]
    assert manager.apply_mask(red.layer_id)
    assert red.mask is None
    alpha = red.surface.data[:, :, 3]
    assert alpha[0, 0] == 0
    assert alpha[0, 1] == 255
    assert alpha[1, 1] == 255
    assert not manager.apply_mask(red.layer_id)


def test_apply_mask_density(manager: MaskManager) -> None:
    red = manager.document[1]
    red.mask.density = 0.5
    red.mask.enabled = False
    manager.apply_mask(red.layer_id)
    assert red.surface.data[0, 0, 3] == 128


def test_apply_mask_to_group(manager: MaskManager) -> None:
    group = manager.document[2]
    manager.add_mask(group.layer_id)
    assert not manager.apply_mask(group.layer_id)
    assert group.mask is not None


def test_invert_and_toggle(manager: MaskManager) -> None:
    red = manager.document[1]
    assert manager.invert_mask(red.layer_id)
    assert red.mask.get_value_at(1, 1) == 255
    assert red.mask.get_value_at(2, 2) == 0

    assert manager.toggle_mask_enabled(red.layer_id)
    assert not red.mask.enabled
    assert manager.toggle_mask_linked(red.layer_id)
    assert not red.mask.linked
    assert manager.toggle_mask_linked(red.layer_id)
    assert red.mask.linked

    background = manager.document[0]
    assert not manager.invert_mask(background.layer_id)
    assert not manager.toggle_mask_enabled(background.layer_id)
    assert not manager.toggle_mask_linked(background.layer_id)


def test_edit_mode(manager: MaskManager) -> None:
    red = manager.document[1]
    background = manager.document[0]
    assert manager.state == MaskEditState.INACTIVE
    assert not manager.enter_mask_edit_mode(background.layer_id)

    assert manager.enter_mask_edit_mode(red.layer_id)
    assert manager.state == MaskEditState.EDITING
    assert manager.is_editing
    assert manager.editing_layer_id == red.layer_id
    assert not manager.enter_mask_edit_mode(red.layer_id)

    manager.add_mask(background.layer_id)
    assert manager.enter_mask_edit_mode(background.layer_id)
    assert manager.editing_layer_id == background.layer_id

    assert manager.exit_mask_edit_mode()
    assert not manager.exit_mask_edit_mode()
    assert manager.state == MaskEditState.INACTIVE


def test_delete_mask_leaves_edit_mode(manager: MaskManager) -> None:
    red = manager.document[1]
    manager.enter_mask_edit_mode(red.layer_id)
    manager.delete_mask(red.layer_id)
    assert manager.state == MaskEditState.INACTIVE
    assert repr(manager) == "MaskManager(state=inactive, editing_layer_id=None)"


@pytest.mark.parametrize("operation", ["remove_layer", "merge_down", "flatten"])
def test_edit_mode_ends_with_layer(manager: MaskManager, operation: str) -> None:
    document = manager.document
    red = document[1]
    manager.enter_mask_edit_mode(red.layer_id)
    if operation == "flatten":
        document.flatten()
    else:
        getattr(document, operation)(red.layer_id)
    assert document.get_layer_by_id(red.layer_id) is None
    assert not manager.is_editing
    assert manager.editing_layer_id is None
    assert manager.state == MaskEditState.INACTIVE
    assert not manager.exit_mask_edit_mode()


def test_edit_mode_ends_with_mask(manager: MaskManager) -> None:
    red = manager.document[1]
    manager.enter_mask_edit_mode(red.layer_id)
    red.mask = None
    assert manager.state == MaskEditState.INACTIVE
