"""Which viewer commands a key press stands for."""

from __future__ import annotations

import os

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

import pygame  # noqa: E402


def _ctrl(mods: int) -> bool:
    return bool(mods & pygame.KMOD_CTRL)


def _command(mods: int) -> bool:
    return bool(mods & pygame.KMOD_GUI)


def is_ctrl_o_pressed(key: int, mods: int = 0) -> bool:
    """Ctrl+O: open a book."""
    return key == pygame.K_o and _ctrl(mods)


def is_left_arrow_pressed(key: int, mods: int = 0) -> bool:
    """Left arrow or A: previous frame."""
    return key in (pygame.K_LEFT, pygame.K_a)


def is_right_arrow_pressed(key: int, mods: int = 0) -> bool:
    """Right arrow or D: next frame."""
    return key in (pygame.K_RIGHT, pygame.K_d)


def is_clear_error_pressed(key: int, mods: int = 0) -> bool:
    """C: dismiss the error message."""
    return key == pygame.K_c


def is_help_requested(key: int, mods: int = 0) -> bool:
    """H or F1."""
    return key in (pygame.K_h, pygame.K_F1)


def is_info_requested(key: int, mods: int = 0) -> bool:
    """I."""
    return key == pygame.K_i


def is_escape_pressed(key: int, mods: int = 0) -> bool:
    return key == pygame.K_ESCAPE


def is_quit_requested(key: int, mods: int = 0) -> bool:
    """Ctrl+Q, Cmd+Q or Escape."""
    quit_key = key == pygame.K_q and (_ctrl(mods) or _command(mods))
    return quit_key or is_escape_pressed(key, mods)