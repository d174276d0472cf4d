"""Tests for reference template calibration."""

import numpy as np
import pytest
from repertoirevision.core.models import CellKey, CellSize, Margins, PieceClass, SquareColor
from repertoirevision.recognition.templates import (
    ReferenceTemplateSet,
    TemplateCalibrator,
    compute_cell_geometry,
    crop_cell,
)


@pytest.fixture
def starting_crop(render_board, board_region, starting_board):
    image = render_board(starting_board)
    return image[board_region.y1:board_region.y2, board_region.x1:board_region.x2]


class TestCellGeometry:
    """Tests for cell size and margin computation."""

    def test_geometry_of_320px_board(self):
        cell_size, margins = compute_cell_geometry(np.zeros((320, 320), np.uint8))
        assert cell_size == CellSize(40, 40)
        assert margins == Margins(5, 5)

    def test_minimum_margin_is_one(self):
        _, margins = compute_cell_geometry(np.zeros((40, 48), np.uint8))
        assert margins == Margins(1, 1)

    def test_crop_cell_excludes_margins(self):
        board = np.arange(320 * 320, dtype=np.uint32).reshape(320, 320)
        cell = crop_cell(board, 1, 2, CellSize(40, 40), Margins(5, 5))

        assert cell.shape == (30, 30)
        assert cell[0, 0] == board[45, 85]


class TestTemplateCalibrator:
    """Tests for TemplateCalibrator."""

    def test_builds_all_26_templates(self, starting_crop):
        templates, cell_size, margins = TemplateCalibrator().calibrate(starting_crop)

        assert len(templates) == 26
        assert cell_size == CellSize(40, 40)
        assert margins == Margins(5, 5)
        for piece in PieceClass:
            if piece == PieceClass.EMPTY:
                continue
            assert CellKey(piece, SquareColor.LIGHT) in templates
            assert CellKey(piece, SquareColor.DARK) in templates

    def test_templates_have_margin_cropped_shape(self, starting_crop):
        templates, _, _ = TemplateCalibrator().calibrate(starting_crop)

        assert templates.shape == (30, 30)
        for key in templates.keys():
            assert templates[key].shape == (30, 30)
            assert templates[key].dtype == np.float32

    def test_empty_templates_average_square_color(self, starting_crop):
        templates, _, _ = TemplateCalibrator().calibrate(starting_crop)

        light = templates[CellKey(PieceClass.EMPTY, SquareColor.LIGHT)]
        dark = templates[CellKey(PieceClass.EMPTY, SquareColor.DARK)]
        assert np.allclose(light, 200)
        assert np.allclose(dark, 100)

    def test_synthesizes_missing_square_color(self, starting_crop):
        templates, _, _ = TemplateCalibrator().calibrate(starting_crop)

        # The white king starts on e1, a dark square; delta is 200 - 100
        observed = templates[CellKey(PieceClass.W_KING, SquareColor.DARK)]
        synthesized = templates[CellKey(PieceClass.W_KING, SquareColor.LIGHT)]
        assert np.allclose(synthesized, np.clip(observed + 100, 0, 255))

        # The black king starts on e8, a light square
        observed = templates[CellKey(PieceClass.B_KING, SquareColor.LIGHT)]
        synthesized = templates[CellKey(PieceClass.B_KING, SquareColor.DARK)]
        assert np.allclose(synthesized, np.clip(observed - 100, 0, 255))
        assert synthesized.min() >= 0

    def test_averages_off_size_samples(self):
        calibrator = TemplateCalibrator()
        a = np.full((10, 10), 100, dtype=np.uint8)
        b = np.full((12, 8), 200, dtype=np.uint8)

        average = calibrator._average([a, b])

        assert average.shape == (10, 10)
        assert np.allclose(average, 150)

    def test_average_of_no_samples(self):
        assert TemplateCalibrator()._average([np.zeros((0, 0), np.uint8)]) is None


class TestReferenceTemplateSet:
    """Tests for the template container."""

    def test_items_for_square_color(self):
        templates = ReferenceTemplateSet({
            CellKey(PieceClass.EMPTY, SquareColor.LIGHT): np.zeros((4, 4), np.float32),
            CellKey(PieceClass.EMPTY, SquareColor.DARK): np.ones((4, 4), np.float32),
            CellKey(PieceClass.W_PAWN, SquareColor.LIGHT): np.ones((4, 4), np.float32),
        })

        light = [key.piece for key, _ in templates.items_for(SquareColor.LIGHT)]

        assert light == [PieceClass.EMPTY, PieceClass.W_PAWN]

    def test_context_manager_releases_templates(self, starting_crop):
        templates, _, _ = TemplateCalibrator().calibrate(starting_crop)

        with templates:
            assert not templates.closed

        assert templates.closed
        assert len(templates) == 0
