"""
Скрипт инициализации базы данных
Создаёт таблицы и добавляет начальные данные
"""
from barberbook.database import init_db
from barberbook.main import init_default_schedule, init_default_services


if __name__ == "__main__":
    # Создаём все таблицы
    print("Создание таблиц...")
    init_db()
    print("Таблицы созданы!")

    init_default_schedule()
    init_default_services()

    print("\nИнициализация завершена!")
    print("Теперь можно запустить сервер: python -m uvicorn barberbook.main:app --reload")
