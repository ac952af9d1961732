"""Test the unified logging configuration.

Tests for src.utils.logging_config:
    - Human and JSON formats carry the pushed context fields
    - setup_logging is idempotent (no duplicated handlers)
    - File handlers, including rotation

Run:
    pytest tests/test_logging.py -v
"""

import json
import logging
import logging.handlers

import pytest

from src.utils import logging_config
from src.utils.logging_config import ContextFormatter, current_context, pop_context, push_context


@pytest.fixture
def restore_root():
    """Drop the handlers a test installed and restore root level and context."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    context = current_context()
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    logging_config._installed_handlers.clear()
    root.setLevel(level)
    logging.captureWarnings(False)
    pop_context()
    push_context(**context)


def make_record(msg="Seed synthesized"):
    return logging.LogRecord('src.seed_synthesis', logging.INFO, __file__, 1, msg, None, None)


def test_push_and_pop_context():
    pop_context()
    push_context(app='seed_preview', modality='text')
    assert current_context() == {'app': 'seed_preview', 'modality': 'text'}
    pop_context(['modality'])
    assert current_context() == {'app': 'seed_preview'}
    pop_context()
    assert current_context() == {}


def test_human_format_includes_context():
    pop_context()
    push_context(modality='circle')
    try:
        line = ContextFormatter('human', use_color=False).format(make_record())
    finally:
        pop_context()
    assert '| INFO     |' in line
    assert 'modality=circle' in line
    assert line.endswith('Seed synthesized')


def test_json_format():
    pop_context()
    push_context(modality='square')
    try:
        payload = json.loads(ContextFormatter('json').format(make_record()))
    finally:
        pop_context()
    assert payload['lvl'] == 'INFO'
    assert payload['msg'] == 'Seed synthesized'
    assert payload['modality'] == 'square'


def test_unknown_format_mode():
    with pytest.raises(ValueError):
        ContextFormatter('xml')


def test_setup_logging_idempotent(restore_root):
    """Repeat calls replace their own handlers and keep everyone else's."""
    foreign = logging.NullHandler()
    restore_root.addHandler(foreign)
    try:
        first = logging_config.setup_logging(log_level='DEBUG', color=False)
        count = len(restore_root.handlers)
        second = logging_config.setup_logging(log_level='INFO', color=False)

        assert len(restore_root.handlers) == count
        assert foreign in restore_root.handlers
        assert first['handlers'][0] not in restore_root.handlers
        assert second['handlers'][0] in restore_root.handlers
        assert restore_root.level == logging.INFO
    finally:
        restore_root.removeHandler(foreign)


def test_file_logging_json(restore_root, tmp_path):
    log_file = tmp_path / 'logs' / 'seed.log'
    logging_config.setup_logging(log_file=str(log_file), json=True, to_stderr=False, context={'app': 'test'})
    logging.getLogger('src.seed_synthesis').info("written to file")
    for handler in restore_root.handlers:
        handler.flush()

    lines = log_file.read_text().strip().splitlines()
    payload = json.loads(lines[-1])
    assert payload['msg'] == 'written to file'
    assert payload['app'] == 'test'


def test_rotating_file_handler(restore_root, tmp_path):
    info = logging_config.setup_logging(
        log_file=str(tmp_path / 'seed.log'),
        to_stderr=False,
        rotate={'mode': 'size', 'max_bytes': 1024, 'backup_count': 2},
    )
    (handler,) = info['handlers']
    assert isinstance(handler, logging.handlers.RotatingFileHandler)


def test_unknown_rotation_mode(restore_root, tmp_path):
    with pytest.raises(ValueError, match="Unknown rotation mode"):
        logging_config.setup_logging(log_file=str(tmp_path / 'seed.log'), rotate={'mode': 'weekly'})
