"""
Pack Curator - граф зависимостей и курирование сборки модов.

Структура:
- plugin_system/ - обнаружение архивов, чтение манифестов, вложенные архивы
- canonical.py - канонизация идентификаторов
- dependency_graph.py - граф пакетов и его построение
- reconciler.py - восстановление ручных данных из прошлого отчета
- categorizer.py - эвристики категорий и сторон
- toggle_engine.py - каскадное включение/отключение
- report.py - markdown-отчет
- curator.py - сервис, связывающий этапы
"""

__version__ = "1.0.0"
