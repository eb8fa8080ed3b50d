"""Shared test fixtures.

Everything here is pure Python; nothing imports GTK or cairo.
"""

import pytest

SAMPLE_ANIMATIONS = """\
animation idle
frame 100ms
 o 
/|\\
frame 100ms
 o 
-|-
animation walk/left
frame 50ms
<o 
/|
animation walk/right
frame 50ms
 o>
 |\\
animation sad/0
frame 200ms
 . 
/|\\
animation sad/1
frame 200ms
 ; 
/|\\
animation want/eat
frame 300ms
 o  food?
/|\\
animation task/general
frame 100ms
\\o/
 | 
"""


@pytest.fixture
def sample_text():
    return SAMPLE_ANIMATIONS


@pytest.fixture
def library(sample_text):
    from animations import load
    return load(sample_text)
