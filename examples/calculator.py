import sys
import logging

from calculator import Calculator


if __name__ == "__main__":
    args = sys.argv[1:]
    if args and args[0] == "-v":
        logging.basicConfig(level=logging.DEBUG)
        args = args[1:]

    calc = Calculator()
    tests = args or [
        "123",  # 123
        "1 + 23",  # 24
        "1 + (2 + 3)",  # 6
        "1 + (2 + 3) * ((4))",  # 21
        "2 * 3 + 4 abc",  # 10, 'abc' left over
        "(1 + 2",  # parse error
        "4294967295 + 1",  # numeric overflow
    ]
    for t in tests:
        print(t, "->", calc.evaluate(t).describe())
