import logging
import sys
import json
import inspect
import datetime
from functools import wraps
import traceback

from src.core import get_settings
from src.logs.server_log import log_dir

settings = get_settings()

# Константы для цветного вывода
BLUE = '\033[94m'
GREEN = '\033[92m'
YELLOW = '\033[93m'
RED = '\033[91m'
PURPLE = '\033[95m'
CYAN = '\033[96m'
BOLD = '\033[1m'
END = '\033[0m'

NO_TRACEBACK = 'NoneType: None\n'


def format_object(obj):
    if isinstance(obj, (list, dict, tuple, set)):
        try:
            return json.dumps(obj, indent=2, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            return str(obj)
    if hasattr(obj, '__dict__'):
        # ORM-объекты тащат за собой _sa_instance_state
        return str({k: v for k, v in vars(obj).items() if not k.startswith('_')})
    return str(obj)


class DebugLogger:
    """Расширенный логгер для дебага с информацией о месте вызова и цветным выводом"""

    def __init__(self, name="debug", level=logging.DEBUG):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)
        self.logger.propagate = False

        if self.logger.handlers:
            self.logger.handlers.clear()

        formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
        )

        file_handler = logging.FileHandler(log_dir / "debug.log", encoding='utf-8')
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        # В консоль дебаг пишем только в режиме DEBUG
        console_handler.setLevel(level if settings.DEBUG else logging.INFO)

        self.logger.addHandler(file_handler)
        self.logger.addHandler(console_handler)

    def debug(self, message, *args, **kwargs):
        """Дебаг лог с информацией о вызывающем коде"""
        frame = inspect.currentframe().f_back
        filename = frame.f_code.co_filename
        if "src" in filename:
            filename = filename[filename.index("src"):]

        caller_info = f"{BLUE}[{filename}:{frame.f_lineno} - {frame.f_code.co_name}]{END}"
        self.logger.debug(f"{caller_info} {message}", *args, **kwargs)

    def info(self, message, *args, **kwargs):
        self.logger.info(f"{GREEN}{message}{END}", *args, **kwargs)

    def warning(self, message, *args, **kwargs):
        self.logger.warning(f"{YELLOW}{message}{END}", *args, **kwargs)

    def error(self, message, *args, **kwargs):
        """Лог ошибок, с трейсом если он есть"""
        trace = traceback.format_exc()
        if trace and trace != NO_TRACEBACK:
            message = f"{message}\n{RED}Traceback:{END}\n{trace}"
        self.logger.error(f"{RED}{message}{END}", *args, **kwargs)

    def start_func(self, func_name, params=None):
        params_str = f" с параметрами: {format_object(params)}" if params else ""
        self.debug(f"{PURPLE}Начало выполнения функции {func_name}{END}{params_str}")

    def end_func(self, func_name, result=None, execution_time=None):
        result_str = ""
        if result is not None:
            formatted = format_object(result)
            result_str = f", результат: {formatted[:1000]}"
            if len(formatted) > 1000:
                result_str += "... [обрезано]"

        time_str = f", время выполнения: {execution_time:.4f}с" if execution_time else ""
        self.debug(f"{PURPLE}Окончание выполнения функции {func_name}{END}{result_str}{time_str}")

    def log_exception(self, message="Произошло исключение"):
        exc_type, exc_value, _ = sys.exc_info()
        if exc_type:
            self.error(f"{message}: {exc_type.__name__}: {exc_value}")
        else:
            self.error(message)

    def log_request(self, request, extra_info=None):
        """Логирование входящего HTTP запроса"""
        method = getattr(request, 'method', 'UNKNOWN')
        url = str(getattr(request, 'url', 'UNKNOWN'))
        client = getattr(request, 'client', None)
        client_host = client.host if client else "unknown"
        # Токен в лог не пишем
        headers = {
            k: v for k, v in dict(getattr(request, 'headers', {})).items()
            if k.lower() != "authorization"
        }

        info = (
            f"{CYAN}HTTP запрос:{END} {method} {url}\n"
            f"{CYAN}Клиент:{END} {client_host}\n"
            f"{CYAN}Заголовки:{END} {json.dumps(headers, indent=2, ensure_ascii=False)}"
        )
        if extra_info:
            info += f"\n{CYAN}Дополнительно:{END} {extra_info}"

        self.debug(info)

    def log_response(self, response, process_time=None):
        status_code = getattr(response, 'status_code', 0)
        color = GREEN if 200 <= status_code < 400 else YELLOW if 400 <= status_code < 500 else RED

        info = f"{CYAN}HTTP ответ:{END} {color}Статус {status_code}{END}"
        if process_time is not None:
            info += f"\n{CYAN}Время обработки:{END} {process_time:.3f}с"

        self.debug(info)


def _call_args(func, args, kwargs):
    func_args = dict(zip(inspect.getfullargspec(func).args, args))
    func_args.update(kwargs)
    func_args.pop('self', None)
    func_args.pop('cls', None)
    # Сессию БД логировать бессмысленно
    func_args.pop('db', None)
    return func_args


def log_function(logger=None):
    """Декоратор для логирования входа/выхода функции (обычной или async)"""

    def decorator(func):
        log = logger or debug_logger

        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                start_time = datetime.datetime.now()
                log.start_func(func.__name__, _call_args(func, args, kwargs))
                try:
                    result = await func(*args, **kwargs)
                except Exception:
                    log.log_exception(f"Ошибка в функции {func.__name__}")
                    raise
                execution_time = (datetime.datetime.now() - start_time).total_seconds()
                log.end_func(func.__name__, result, execution_time)
                return result

            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = datetime.datetime.now()
            log.start_func(func.__name__, _call_args(func, args, kwargs))
            try:
                result = func(*args, **kwargs)
            except Exception:
                log.log_exception(f"Ошибка в функции {func.__name__}")
                raise
            execution_time = (datetime.datetime.now() - start_time).total_seconds()
            log.end_func(func.__name__, result, execution_time)
            return result

        return wrapper

    return decorator


debug_logger = DebugLogger()
