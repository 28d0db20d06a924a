"""
This package contains all command line units. To write an executable unit, it is sufficient to
write a class inheriting from `lgres.units.Unit` and implement `lgres.units.Unit.process`. For
example, the following unit would print the number of resources in a resource file:

    from lgres.units import Unit
    from lgres.lib.resfile import ResourceFile

    class lgcount(Unit):
        def process(self, data):
            return str(len(ResourceFile(data))).encode(self.codec)

### Command Line Parameters

Command line parameters are declared as parameters of the unit's `__init__` method. The
`lgres.units.Arg` annotation is optional and can be used to control the argument parser:

    class lgpick(Unit):
        def __init__(self, id: Arg.Number(help='Resource identifier')):
            pass

        def process(self, data):
            return ResourceFile(data).block(self.args.id)

When the body of `__init__` is empty, boilerplate code is added that stores all parameters in the
`args` member variable of the unit.

### Units in Code

Units can be used in Python code much like on the command line. Combining a unit from the left
with a byte string feeds the data into the unit, and the output can be collected by combining the
unit from the right with a literal ellipsis, a type, or a list containing a callable:

    >>> data | xtlgres(0x10) | ...
    bytearray(b'...')
    >>> data | xtlgres() | [bytes]
    [b'...', b'...']

Units that are instantiated in code are detached from logging, i.e. any error is raised as an
exception to the caller.
"""
from __future__ import annotations

import inspect
import os
import sys

from abc import ABCMeta
from argparse import OPTIONAL, ZERO_OR_MORE, Namespace
from typing import Any, Callable, ClassVar, Iterable, Iterator, Optional

from lgres.lib.argparser import ArgparseError, ArgumentParserWithKeywordHooks
from lgres.lib.decompression import PartialResult
from lgres.lib.environment import Logger, LogLevel, environment, logger
from lgres.lib.types import buf

ERROR_NO_ARGS = 1
ERROR_FAILED = 1


def number(value: str | int) -> int:
    """
    Parse an integer in any notation that Python understands, i.e. decimal, hexadecimal with the
    prefix `0x`, octal or binary.
    """
    if isinstance(value, int):
        return value
    return int(value, 0)


class Entry:
    """
    An empty class marker. Any entry point unit (i.e. any unit that can be executed via the
    command line) is an instance of this class.
    """


class Argument:
    """
    This class implements an abstract argument to a Python function, including positional and
    keyword arguments. The syntax `function @ Argument(a, b, kwd=c)` is equivalent to the call
    `function(a, b, kwd=c)`.
    """
    __slots__ = 'args', 'kwargs'

    def __init__(self, *args, **kwargs):
        self.args = list(args)
        self.kwargs = kwargs

    def __rmatmul__(self, method):
        return method(*self.args, **self.kwargs)

    def __repr__(self):
        arglist = [repr(a) for a in self.args]
        arglist.extend(F'{key!s}={value!r}' for key, value in self.kwargs.items())
        return ', '.join(arglist)


class Arg(Argument):
    """
    This class is specifically an argument for the `add_argument` method of an `ArgumentParser`
    from the `argparse` module. It is used as an annotation for the constructor of a unit to
    control the argument parser of that unit's command line interface.
    """

    class omit:
        """
        A sentinel class to mark arguments as omitted for the argument parser.
        """

    def __init__(
        self, *args: str,
        action   : type[omit] | str               = omit,  # noqa
        choices  : type[omit] | Iterable[Any]     = omit,  # noqa
        const    : type[omit] | Any               = omit,  # noqa
        default  : type[omit] | Any               = omit,  # noqa
        dest     : type[omit] | str               = omit,  # noqa
        help     : type[omit] | str               = omit,  # noqa
        metavar  : type[omit] | str               = omit,  # noqa
        nargs    : type[omit] | int | str         = omit,  # noqa
        required : type[omit] | bool              = omit,  # noqa
        type     : type[omit] | type | Callable   = omit,  # noqa
    ) -> None:
        kwargs = dict(action=action, choices=choices, const=const, default=default, dest=dest,
            help=help, metavar=metavar, nargs=nargs, required=required, type=type)
        kwargs = {key: value for key, value in kwargs.items() if value is not self.omit}
        super().__init__(*args, **kwargs)

    @classmethod
    def Switch(cls, *args: str, help: type[omit] | str = omit, dest: type[omit] | str = omit):
        """
        A boolean flag that is off by default.
        """
        return cls(*args, action='store_true', help=help, dest=dest)

    @classmethod
    def Number(cls, *args: str, help: type[omit] | str = omit, metavar: type[omit] | str = omit,
            nargs: type[omit] | int | str = omit, dest: type[omit] | str = omit):
        """
        An integer argument; any notation understood by Python literals is accepted.
        """
        return cls(*args, type=number, help=help, metavar=metavar, nargs=nargs, dest=dest)

    @classmethod
    def FsPath(cls, *args: str, help: type[omit] | str = omit, metavar: type[omit] | str = 'path',
            nargs: type[omit] | int | str = omit, dest: type[omit] | str = omit):
        """
        A file system path.
        """
        return cls(*args, type=str, help=help, metavar=metavar, nargs=nargs, dest=dest)

    @property
    def positional(self) -> bool:
        return any(a[0] != '-' for a in self.args)

    @classmethod
    def Infer(cls, pt: inspect.Parameter, module: str) -> Arg:
        """
        Create the argument for a parameter of a unit constructor, taking into account the `Arg`
        annotation, if any, as well as the default value and kind of the parameter.
        """
        annotation = pt.annotation
        if isinstance(annotation, str):
            try:
                annotation = eval(annotation, sys.modules[module].__dict__)
            except Exception:
                annotation = None
        if isinstance(annotation, Arg):
            arg = cls(*annotation.args, **annotation.kwargs)
        else:
            arg = cls()
        kwargs = arg.kwargs
        name = pt.name
        if pt.kind is pt.VAR_POSITIONAL:
            if not arg.args:
                arg.args.append(name)
            kwargs.setdefault('nargs', ZERO_OR_MORE)
            return arg
        if not arg.args:
            if pt.default is pt.empty:
                arg.args.append(name)
            else:
                arg.args.append(F'--{name.replace("_", "-")}')
        if arg.positional:
            if pt.default is not pt.empty:
                kwargs.setdefault('nargs', OPTIONAL)
                kwargs.setdefault('default', pt.default)
            return arg
        kwargs.setdefault('dest', name)
        if pt.default is not pt.empty:
            if pt.default is False:
                kwargs.setdefault('action', 'store_true')
            if not kwargs.get('action', 'store').startswith('store_'):
                kwargs.setdefault('default', pt.default)
        else:
            kwargs.setdefault('required', True)
        return arg


class Executable(ABCMeta):
    """
    This is the metaclass for units. It infers the command line interface of a unit from the
    signature of its constructor and marks every non-abstract unit as an `lgres.units.Entry`.
    """

    _argument_specification: dict[str, Arg]

    def __new__(mcs, name: str, bases: tuple[type, ...], nmspc: dict[str, Any], abstract=False):
        if not abstract and Entry not in bases:
            bases = bases + (Entry,)
        nmspc.setdefault('__doc__', '')
        return super().__new__(mcs, name, bases, nmspc)

    def __init__(cls, name: str, bases: tuple[type, ...], nmspc: dict[str, Any], abstract=False):
        super().__init__(name, bases, nmspc)
        cls_init = cls.__init__
        parameters = list(inspect.signature(cls_init).parameters.values())[1:]
        cls._argument_specification = {
            pt.name: Arg.Infer(pt, cls.__module__)
            for pt in parameters if pt.kind is not pt.VAR_KEYWORD
        }

        try:
            initcode = cls_init.__code__.co_code
        except AttributeError:
            initcode = None

        if initcode == (lambda: None).__code__.co_code and '__init__' in nmspc:
            base_init = bases[0].__init__
            signature = inspect.signature(cls_init)

            def auto__init__(self, *args, **kw):
                bound = signature.bind(self, *args, **kw)
                bound.apply_defaults()
                arguments = dict(bound.arguments)
                del arguments[next(iter(signature.parameters))]
                base_init(self, **arguments)

            auto__init__.__signature__ = signature
            auto__init__.__doc__ = cls_init.__doc__
            setattr(cls, '__init__', auto__init__)

    def __ror__(cls, other) -> Unit:
        return cls().__ror__(other)

    def __or__(cls, other):
        return cls().__or__(other)

    @property
    def codec(cls) -> str:
        """
        The codec for encoding textual output; hardcoded to `UTF8`.
        """
        return 'UTF8'

    @property
    def name(cls) -> str:
        """
        The name of the unit as it would be used on the command line.
        """
        return cls.__name__.strip('_').replace('_', '-')

    @property
    def logger(cls) -> Logger:
        """
        The debug logger instance for the unit.
        """
        try:
            return cls.__dict__['_logger']
        except KeyError:
            pass
        cls._logger = _logger = logger(cls.name)
        return _logger


class Unit(metaclass=Executable, abstract=True):
    """
    The base class for all units.
    """

    reads_input: ClassVar[bool] = True
    """
    Units that do not read from standard input when run from the command line set this to `False`.
    """

    usage: ClassVar[Optional[str]] = None
    """
    An optional usage line that replaces the one generated by the argument parser.
    """

    def __init__(self, **keywords):
        for key, value in dict(verbose=0, quiet=False, lenient=0).items():
            keywords.setdefault(key, value)
        self.args = Namespace(**keywords)
        self._source = None
        self.log_detach()

    @property
    def codec(self) -> str:
        return self.__class__.codec

    @property
    def name(self) -> str:
        return self.__class__.name

    @property
    def logger(self) -> Logger:
        return self.__class__.logger

    @property
    def is_quiet(self) -> bool:
        return getattr(self.args, 'quiet', False)

    @property
    def leniency(self) -> int:
        return getattr(self.args, 'lenient', 0)

    @property
    def log_level(self) -> LogLevel:
        """
        Returns the current log level as an element of `lgres.lib.environment.LogLevel`.
        """
        if self.is_quiet:
            return LogLevel.NONE
        return LogLevel(self.logger.getEffectiveLevel())

    @log_level.setter
    def log_level(self, value: int | LogLevel) -> None:
        if not isinstance(value, LogLevel):
            value = LogLevel.FromVerbosity(value)
        self.logger.setLevel(value)

    def log_detach(self) -> Unit:
        """
        Detach the unit from its logger, which also means that any exceptions that occur during
        runtime will be raised to the caller.
        """
        self.log_level = LogLevel.DETACHED
        return self

    @classmethod
    def log_fail(cls, *messages) -> bool:
        rv = cls.logger.isEnabledFor(LogLevel.ERROR)
        if rv and messages:
            cls.logger.error(cls._output(*messages))
        return rv

    @classmethod
    def log_warn(cls, *messages) -> bool:
        rv = cls.logger.isEnabledFor(LogLevel.WARNING)
        if rv and messages:
            cls.logger.warning(cls._output(*messages))
        return rv

    @classmethod
    def log_info(cls, *messages) -> bool:
        rv = cls.logger.isEnabledFor(LogLevel.INFO)
        if rv and messages:
            cls.logger.info(cls._output(*messages))
        return rv

    @classmethod
    def log_debug(cls, *messages) -> bool:
        rv = cls.logger.isEnabledFor(LogLevel.DEBUG)
        if rv and messages:
            cls.logger.debug(cls._output(*messages))
        return rv

    @classmethod
    def _output(cls, *messages) -> str:
        def transform(message):
            if callable(message):
                message = message()
            if isinstance(message, (bytes, bytearray, memoryview)):
                return bytes(message).hex().upper()
            return str(message)
        return ' '.join(transform(msg) for msg in messages)

    def process(self, data: Optional[bytearray]) -> None | buf | Iterable[buf]:
        return data

    def act(self, data: Optional[bytearray]) -> Iterator[bytearray]:
        """
        Run `lgres.units.Unit.process` and normalize its result to a sequence of chunks. Errors are
        handled according to the log level and leniency of the unit.
        """
        try:
            result = self.process(data)
            if result is None:
                return
            if isinstance(result, (bytes, bytearray, memoryview)):
                yield bytearray(result)
                return
            for chunk in result:
                yield bytearray(chunk)
        except PartialResult as PR:
            if self.leniency >= 1:
                yield bytearray(PR.partial)
                return
            if self.log_level >= LogLevel.DETACHED:
                raise
            self.log_warn(F'a partial result was returned, use the -L switch to retrieve it: {PR!s}')
            raise
        except Exception as E:
            if self.log_level < LogLevel.DETACHED:
                self.log_fail(F'exception of type {E.__class__.__name__}; {E!s}')
            raise

    def __ror__(self, data: buf | str | None) -> Unit:
        if isinstance(data, str):
            data = data.encode(self.codec)
        if data is not None:
            data = bytearray(data)
        self._source = data
        return self

    def __iter__(self) -> Iterator[bytearray]:
        return self.act(self._source)

    def __or__(self, sink):
        if sink is ...:
            return bytearray().join(self)
        if isinstance(sink, list) and len(sink) == 1:
            convert, = sink
            return [c if convert is ... else convert(c) for c in self]
        if isinstance(sink, type) and issubclass(sink, str):
            return bytearray().join(self).decode(self.codec)
        if callable(sink):
            return sink(bytearray().join(self))
        raise TypeError(F'Unable to connect unit output to object of type {type(sink).__name__}.')

    @classmethod
    def argparser(cls, **keywords) -> ArgumentParserWithKeywordHooks:
        argp = ArgumentParserWithKeywordHooks(
            keywords, prog=cls.name, description=inspect.cleandoc(cls.__doc__ or ''), add_help=False)
        if cls.usage:
            argp.usage = cls.usage.format(name=cls.name)
        for argument in cls._argument_specification.values():
            _ = argp.add_argument @ argument
        base = argp.add_argument_group('generic options')
        base.add_argument('-h', '--help', action='help', help='Show this help message and exit.')
        base.add_argument('-L', '--lenient', action='count', default=0,
            help='Increase the leniency, allowing partial results.')
        base.add_argument('-Q', '--quiet', action='store_true', help='Disables all log output.')
        base.add_argument('-v', '--verbose', action='count', default=0,
            help='Specify up to two times to increase log level.')
        return argp

    @classmethod
    def assemble(cls, *_args: str, **keywords) -> Unit:
        """
        Creates a unit from the given command line arguments. The given keywords are used to
        overwrite any previously specified defaults for the argument parser of the unit.
        """
        argp = cls.argparser(**keywords)
        args = argp.parse_args_with_keywords(_args)
        generic = {key: getattr(args, key) for key in ('lenient', 'quiet', 'verbose')}
        positional = []
        named = {}
        for pt in list(inspect.signature(cls.__init__).parameters.values())[1:]:
            if pt.kind is pt.VAR_KEYWORD or not hasattr(args, pt.name):
                continue
            value = getattr(args, pt.name)
            if pt.kind is pt.VAR_POSITIONAL:
                positional.extend(value)
            elif pt.kind is pt.POSITIONAL_OR_KEYWORD:
                positional.append(value)
            else:
                named[pt.name] = value
        try:
            unit = cls(*positional, **named)
        except ValueError as E:
            argp.error(str(E))
        for key, value in generic.items():
            setattr(unit.args, key, value)
        if args.quiet:
            unit.log_level = LogLevel.NONE
        else:
            unit.log_level = args.verbose
        return unit

    @classmethod
    def banner(cls) -> str:
        from lgres import __version__
        return F'{cls.name} v{__version__}'

    @classmethod
    def run(cls, argv=None, stream=None) -> int:
        """
        Implements command line execution and returns the exit code.
        """
        argv = argv if argv is not None else sys.argv[1:]

        try:
            unit = cls.assemble(*argv)
        except ArgparseError as ap:
            out = sys.stderr
            out.write(F'{cls.banner()}\n\n')
            ap.parser.print_usage(out)
            out.write(F'{cls.name}: error: {ap!s}\n')
            return ERROR_NO_ARGS

        loglevel = environment.verbosity.value
        if loglevel:
            unit.log_level = loglevel

        data = None
        if cls.reads_input:
            if stream is None:
                stream = open(os.devnull, 'rb') if sys.stdin.isatty() else sys.stdin.buffer
            with stream as source:
                data = bytearray(source.read())

        try:
            output = sys.stdout.buffer
            for chunk in unit.act(data):
                output.write(chunk)
            output.flush()
        except KeyboardInterrupt:
            unit.log_warn('aborting due to keyboard interrupt')
            return ERROR_FAILED
        except Exception:
            return ERROR_FAILED
        return 0
