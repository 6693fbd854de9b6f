# core/csv_line.py
from typing import List


def parse_csv_line(line: str) -> List[str]:
    r'''
    Split one CSV record (no embedded newlines) into fields.

    Quoted fields may contain commas, and a doubled quote inside a quoted
    field stands for one literal quote. An unterminated quoted field is not
    rejected: it simply runs to the end of the line.

    >>> parse_csv_line('a,"b,c",d')
    ['a', 'b,c', 'd']
    >>> parse_csv_line('"say ""hi"""')
    ['say "hi"']
    >>> parse_csv_line('')
    ['']
    '''
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    n = len(line)

    while i < n:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                current.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1

    fields.append("".join(current))
    return fields
