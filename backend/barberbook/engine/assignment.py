"""
Назначение мастера по кругу (round-robin) для записей "к любому мастеру"
"""
import logging
from datetime import date
from typing import Iterable, Optional, Sequence, Tuple

from .timeofday import TimeOfDay
from .types import Appointment, AppointmentStatus, Master, SchedulingState

logger = logging.getLogger(__name__)


def select_next_master(
    master_pool: Sequence[Master],
    target_date: date,
    slot_time: TimeOfDay,
    cursor: int,
    appointments: Iterable[Appointment]
) -> Optional[Tuple[int, Master]]:
    """
    Выбрать следующего свободного мастера по кругу, начиная с cursor + 1.

    Свободен = нет неотменённой записи ровно на эту дату и время
    (слот уже проверен на пересечения до этого шага).
    Если заняты все, возвращаем мастера на исходной следующей позиции:
    запись не теряем, двойное бронирование поймает проверка при сохранении.
    Возвращает (индекс в пуле, мастер) или None для пустого пула
    """
    pool_size = len(master_pool)
    if pool_size == 0:
        return None

    busy = {
        apt.master_id for apt in appointments
        if apt.date == target_date
        and apt.time == slot_time
        and apt.status != AppointmentStatus.CANCELLED
    }

    start_index = (cursor + 1) % pool_size
    for offset in range(pool_size):
        index = (start_index + offset) % pool_size
        if master_pool[index].id not in busy:
            return index, master_pool[index]

    logger.warning(
        f"Все мастера заняты на {target_date} {slot_time}, "
        f"назначаем {master_pool[start_index].id} без проверки"
    )
    return start_index, master_pool[start_index]


class RoundRobinAssigner:
    """
    Курсор ротации салона.
    Чтение и сдвиг курсора выполняются под блокировкой состояния,
    сдвиг только через commit() после успешного сохранения записи
    """

    def __init__(self, state: SchedulingState):
        self.state = state

    def select(
        self,
        target_date: date,
        slot_time: TimeOfDay,
        cursor: Optional[int] = None
    ) -> Optional[Tuple[int, Master]]:
        """
        Следующий мастер после cursor (по умолчанию после сохранённого курсора).
        Курсор состояния не меняется
        """
        with self.state.lock:
            if cursor is None:
                cursor = self.state.last_assigned_master_index
            return select_next_master(
                self.state.active_masters(),
                target_date,
                slot_time,
                cursor,
                self.state.appointments
            )

    def commit(self, index: int) -> None:
        with self.state.lock:
            self.state.last_assigned_master_index = index
