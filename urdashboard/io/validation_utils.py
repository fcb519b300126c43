import logging
from typing import List

LOG_LEVEL_IO = 5
logging.addLevelName(LOG_LEVEL_IO, "IO")


def align_lines(expected: str, actual: str) -> str:
  """Align an expected and an actual command line character by character.

  Uses an edit distance table (Needleman-Wunsch with unit costs) so a single inserted or dropped
  character does not mark the rest of the line as different. Returns three lines: the aligned
  expected text, the aligned actual text, and a marker line with `^` under every difference.
  """

  m, n = len(expected), len(actual)
  dist = [[0] * (n + 1) for _ in range(m + 1)]
  for i in range(m + 1):
    dist[i][0] = i
  for j in range(n + 1):
    dist[0][j] = j

  for i in range(1, m + 1):
    for j in range(1, n + 1):
      substitution = 0 if expected[i - 1] == actual[j - 1] else 1
      dist[i][j] = min(
        dist[i - 1][j - 1] + substitution,
        dist[i - 1][j] + 1,
        dist[i][j - 1] + 1,
      )

  top: List[str] = []
  bottom: List[str] = []
  markers: List[str] = []
  i, j = m, n
  while i > 0 or j > 0:
    same = i > 0 and j > 0 and expected[i - 1] == actual[j - 1]
    if i > 0 and j > 0 and dist[i][j] == dist[i - 1][j - 1] + (0 if same else 1):
      top.append(expected[i - 1])
      bottom.append(actual[j - 1])
      markers.append(" " if same else "^")
      i, j = i - 1, j - 1
    elif i > 0 and dist[i][j] == dist[i - 1][j] + 1:
      top.append(expected[i - 1])
      bottom.append("-")
      markers.append("^")
      i -= 1
    else:
      top.append("-")
      bottom.append(actual[j - 1])
      markers.append("^")
      j -= 1

  return "\n".join(
    (
      "expected: " + "".join(reversed(top)),
      "actual:   " + "".join(reversed(bottom)),
      "          " + "".join(reversed(markers)),
    )
  )
