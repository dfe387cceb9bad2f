"""
账单/标准表读取
Tabular file reader for bill exports and rule tables

支持 .csv（utf-8-sig / gb18030 / gbk）与 .xlsx（首个工作表）。
首个非空行为表头，缺失单元格补 ""，全空行跳过，每行记录其表格行号。
"""

from __future__ import annotations

import csv
import io
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from xml.etree import ElementTree as ET

from bill_verifier.core.error_handler import BillFileError

XML_NS_MAIN = {"m": "http://schemas.openxmlformats.org/spreadsheetml/2006/main"}
XML_NS_OFFICE_REL = "{http://schemas.openxmlformats.org/officeDocument/2006/relationships}id"
XML_NS_PKG_REL = "{http://schemas.openxmlformats.org/package/2006/relationships}"

SUPPORTED_SUFFIXES = (".csv", ".xlsx")


@dataclass(slots=True)
class BillTable:
    """读取结果：表头、按表头组装的行，以及每行在原表中的行号。"""

    source: str
    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, str]] = field(default_factory=list)
    row_numbers: list[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)


class BillTableReader:
    """表格文件读取器。"""

    def read(self, path: str | Path) -> BillTable:
        path = Path(path)
        if not path.exists():
            raise BillFileError(f"File not found: {path}", {"path": str(path)})

        suffix = path.suffix.lower()
        if suffix == ".csv":
            numbered = self._load_csv(path)
        elif suffix == ".xlsx":
            try:
                numbered = self._load_xlsx(path)
            except (zipfile.BadZipFile, ET.ParseError, KeyError) as e:
                raise BillFileError(f"Unreadable xlsx file: {path.name}: {e}", {"path": str(path)}) from e
        else:
            raise BillFileError(
                f"Unsupported file type: {suffix or path.name}",
                {"path": str(path), "supported": list(SUPPORTED_SUFFIXES)},
            )

        return self._to_table(numbered, source=path.name)

    def _to_table(self, numbered: list[tuple[int, list[str]]], source: str) -> BillTable:
        table = BillTable(source=source)
        if not numbered:
            return table

        _, header_cells = numbered[0]
        headers = self._dedupe_headers(header_cells)
        table.headers = headers

        for row_number, cells in numbered[1:]:
            record = {h: (cells[i].strip() if i < len(cells) else "") for i, h in enumerate(headers)}
            if not any(record.values()):
                continue
            table.rows.append(record)
            table.row_numbers.append(row_number)
        return table

    @staticmethod
    def _dedupe_headers(cells: list[str]) -> list[str]:
        headers: list[str] = []
        seen: dict[str, int] = {}
        for index, cell in enumerate(cells, start=1):
            name = str(cell).strip() or f"列{index}"
            if name in seen:
                seen[name] += 1
                name = f"{name}_{seen[name]}"
            else:
                seen[name] = 1
            headers.append(name)
        return headers

    def _load_csv(self, path: Path) -> list[tuple[int, list[str]]]:
        text = self._read_text_file(path)
        if not text:
            return []
        reader = csv.reader(io.StringIO(text))
        return [(idx, row) for idx, row in enumerate(reader, start=1) if any(str(col).strip() for col in row)]

    @staticmethod
    def _read_text_file(path: Path) -> str:
        data = path.read_bytes()
        for encoding in ("utf-8-sig", "gb18030", "gbk"):
            try:
                return data.decode(encoding)
            except UnicodeDecodeError:
                continue
        raise BillFileError(f"Unknown text encoding: {path.name}", {"path": str(path)})

    def _load_xlsx(self, path: Path) -> list[tuple[int, list[str]]]:
        with zipfile.ZipFile(path) as archive:
            shared_strings = self._read_shared_strings(archive)
            for _sheet_name, sheet_path in self._read_sheet_paths(archive):
                if sheet_path in archive.namelist():
                    return self._read_sheet_rows(archive, sheet_path, shared_strings)
        return []

    def _read_sheet_paths(self, archive: zipfile.ZipFile) -> list[tuple[str, str]]:
        workbook_xml = "xl/workbook.xml"
        rel_xml = "xl/_rels/workbook.xml.rels"
        if workbook_xml not in archive.namelist() or rel_xml not in archive.namelist():
            return []

        workbook_root = ET.fromstring(archive.read(workbook_xml))
        rel_root = ET.fromstring(archive.read(rel_xml))

        rel_map: dict[str, str] = {}
        for rel in rel_root.findall(f"{XML_NS_PKG_REL}Relationship"):
            rel_id = rel.attrib.get("Id", "")
            target = rel.attrib.get("Target", "")
            if not rel_id or not target:
                continue
            if target.startswith("/"):
                rel_map[rel_id] = target.lstrip("/")
            else:
                rel_map[rel_id] = target if target.startswith("xl/") else f"xl/{target}"

        sheet_paths: list[tuple[str, str]] = []
        for sheet in workbook_root.findall("m:sheets/m:sheet", XML_NS_MAIN):
            name = sheet.attrib.get("name", "").strip()
            target = rel_map.get(sheet.attrib.get(XML_NS_OFFICE_REL, ""), "")
            if name and target:
                sheet_paths.append((name, target))
        return sheet_paths

    def _read_shared_strings(self, archive: zipfile.ZipFile) -> list[str]:
        shared_xml = "xl/sharedStrings.xml"
        if shared_xml not in archive.namelist():
            return []
        root = ET.fromstring(archive.read(shared_xml))
        values: list[str] = []
        for item in root.findall("m:si", XML_NS_MAIN):
            parts = [node.text or "" for node in item.findall(".//m:t", XML_NS_MAIN)]
            values.append("".join(parts))
        return values

    def _read_sheet_rows(
        self,
        archive: zipfile.ZipFile,
        sheet_path: str,
        shared_strings: list[str],
    ) -> list[tuple[int, list[str]]]:
        root = ET.fromstring(archive.read(sheet_path))
        rows: list[tuple[int, list[str]]] = []
        for position, row in enumerate(root.findall("m:sheetData/m:row", XML_NS_MAIN), start=1):
            row_values: dict[int, str] = {}
            for cell in row.findall("m:c", XML_NS_MAIN):
                col = "".join(ch for ch in cell.attrib.get("r", "") if ch.isalpha())
                if not col:
                    continue
                row_values[self._excel_col_to_index(col)] = self._read_cell_value(cell, shared_strings)

            if not row_values:
                continue
            max_col = max(row_values.keys())
            normalized = [row_values.get(i, "") for i in range(1, max_col + 1)]
            if any(str(cell).strip() for cell in normalized):
                rows.append((self._row_number(row, position), normalized))
        return rows

    @staticmethod
    def _row_number(row: ET.Element, fallback: int) -> int:
        try:
            return int(row.attrib.get("r", fallback))
        except ValueError:
            return fallback

    @staticmethod
    def _read_cell_value(cell: ET.Element, shared_strings: list[str]) -> str:
        cell_type = cell.attrib.get("t", "")
        if cell_type == "s":
            node = cell.find("m:v", XML_NS_MAIN)
            if node is None or node.text is None:
                return ""
            try:
                idx = int(node.text)
            except ValueError:
                return ""
            return shared_strings[idx] if 0 <= idx < len(shared_strings) else ""

        if cell_type == "inlineStr":
            return "".join(node.text or "" for node in cell.findall(".//m:t", XML_NS_MAIN))

        node = cell.find("m:v", XML_NS_MAIN)
        return node.text if node is not None and node.text is not None else ""

    @staticmethod
    def _excel_col_to_index(col: str) -> int:
        number = 0
        for char in col.upper():
            if "A" <= char <= "Z":
                number = number * 26 + (ord(char) - ord("A") + 1)
        return number


def read_table(path: str | Path) -> BillTable:
    return BillTableReader().read(path)


def read_records(path: str | Path) -> list[dict[str, Any]]:
    """读取规则表等只需行数据的文件。"""
    return list(read_table(path).rows)
