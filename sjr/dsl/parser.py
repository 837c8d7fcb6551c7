"""
DSL パーサー — 設定ファイル・シナリオファイルの読み込みと検証

ruamel.yaml で YAML を読み込み、Pydantic モデル（SuiteConfig / Scenario）に変換する。

シナリオファイルは config キーで設定ファイルを相対パス参照できる::

    name: カテゴリ検索
    config: mercari.yaml
    steps:
      - navigate: home
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from ..core.errors import ScenarioBuildError
from .schema import Scenario, SuiteConfig

PathLike = Union[str, Path]


# ---------------------------------------------------------------------------
# バリデーションエラー表現
# ---------------------------------------------------------------------------

@dataclass
class DslValidationError:
    """YAML DSL の検証で検出されたエラー。

    Attributes:
        message: エラーメッセージ
        location: エラー箇所（フィールドパス等）
        line: YAML ファイル内の行番号（取得可能な場合）
    """

    message: str
    location: str = ""
    line: Optional[int] = None


class DslSyntaxError(ValueError):
    """YAML 構文エラー。行番号が取得できた場合は line に保持する。"""

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        super().__init__(message)
        self.line = line


# ---------------------------------------------------------------------------
# DslParser 本体
# ---------------------------------------------------------------------------

class DslParser:
    """設定・シナリオ YAML の読み込みと検証を担当するパーサー。"""

    def __init__(self) -> None:
        """ruamel.yaml インスタンスを初期化する。"""
        self._yaml = YAML(typ="safe")

    # ----- load -----

    def load_config(self, path: PathLike) -> SuiteConfig:
        """設定ファイルを読み込み、SuiteConfig に変換する。

        Raises:
            FileNotFoundError: ファイルが存在しない場合
            ValueError: YAML 構文エラーまたはスキーマ検証エラーの場合
        """
        data = self._read_mapping(Path(path))
        try:
            return SuiteConfig(**data)
        except PydanticValidationError as e:
            raise ValueError(f"設定ファイルのスキーマ検証エラー ({path}): {e}") from e

    def load_scenario(
        self, path: PathLike, config: Optional[SuiteConfig] = None
    ) -> Scenario:
        """シナリオファイルを読み込み、Scenario に変換する。

        config が指定された場合は参照検証まで行う。
        シナリオファイル内の config キーは無視される（load_suite を参照）。

        Raises:
            FileNotFoundError: ファイルが存在しない場合
            ValueError: YAML 構文エラーまたはスキーマ検証エラーの場合
            ScenarioBuildError: config に未定義の名前を参照している場合
        """
        data = self._read_mapping(Path(path))
        data.pop("config", None)
        try:
            scenario = Scenario(**data)
        except PydanticValidationError as e:
            raise ValueError(f"シナリオのスキーマ検証エラー ({path}): {e}") from e

        if config is not None:
            scenario.check_references(config)
        return scenario

    def load_suite(
        self, path: PathLike, config_path: Optional[PathLike] = None
    ) -> tuple[Scenario, SuiteConfig]:
        """シナリオと、それが参照する設定をまとめて読み込む。

        config_path が未指定の場合はシナリオファイルの config キーを
        シナリオファイルのディレクトリからの相対パスとして使用する。

        Raises:
            ValueError: 設定ファイルが特定できない場合、または検証エラーの場合
        """
        path = Path(path)
        resolved = self._resolve_config_path(path, config_path)
        config = self.load_config(resolved)
        scenario = self.load_scenario(path, config)
        return scenario, config

    # ----- validate -----

    def validate(
        self, path: PathLike, config_path: Optional[PathLike] = None
    ) -> list[DslValidationError]:
        """シナリオファイル（と参照する設定）を検証し、違反箇所を報告する。

        エラーがない場合は空リストを返す。
        """
        path = Path(path)
        errors: list[DslValidationError] = []

        try:
            data = self._read_mapping(path)
        except FileNotFoundError as e:
            return [DslValidationError(message=str(e), location="file")]
        except DslSyntaxError as e:
            return [DslValidationError(message=str(e), location="yaml", line=e.line)]
        except ValueError as e:
            return [DslValidationError(message=str(e), location="yaml")]

        data.pop("config", None)
        try:
            scenario = Scenario(**data)
        except PydanticValidationError as e:
            errors.extend(_to_validation_errors(e))
            return errors

        try:
            resolved = self._resolve_config_path(path, config_path)
            config = self.load_config(resolved)
        except (FileNotFoundError, ValueError) as e:
            errors.append(DslValidationError(message=str(e), location="config"))
            return errors

        try:
            scenario.check_references(config)
        except ScenarioBuildError as e:
            for group, name in e.missing:
                errors.append(DslValidationError(
                    message=f"{group} に '{name}' が定義されていません",
                    location=f"{group} -> {name}",
                ))

        return errors

    # ----- ユーティリティ -----

    def _read_mapping(self, path: Path) -> dict[str, Any]:
        """YAML ファイルを読み込み、トップレベルの辞書を返す。"""
        if not path.exists():
            raise FileNotFoundError(f"YAML ファイルが見つかりません: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = self._yaml.load(f)
        except YAMLError as e:
            line = None
            line_info = ""
            mark = getattr(e, "problem_mark", None)
            if mark is not None:
                line = mark.line + 1
                line_info = f" (行 {line}, 列 {mark.column + 1})"
            raise DslSyntaxError(f"YAML 構文エラー{line_info}: {e}", line=line) from e

        if data is None:
            raise ValueError(f"YAML ファイルが空です: {path}")
        if not isinstance(data, dict):
            raise ValueError(f"YAML のトップレベルはマッピングである必要があります: {path}")
        return self._to_plain_dict(data)

    def _resolve_config_path(
        self, scenario_path: Path, config_path: Optional[PathLike]
    ) -> Path:
        """使用する設定ファイルのパスを決定する。"""
        if config_path is not None:
            return Path(config_path)

        data = self._read_mapping(scenario_path)
        ref = data.get("config")
        if not ref:
            raise ValueError(
                f"設定ファイルが指定されていません: {scenario_path}"
                "（シナリオの config キーまたは --config で指定してください）"
            )
        return scenario_path.parent / str(ref)

    def _to_plain_dict(self, data: object) -> Any:
        """読み込んだデータを通常の dict/list に再帰変換する。"""
        if isinstance(data, dict):
            return {key: self._to_plain_dict(value) for key, value in data.items()}
        if isinstance(data, list):
            return [self._to_plain_dict(item) for item in data]
        return data


def _to_validation_errors(error: PydanticValidationError) -> list[DslValidationError]:
    """Pydantic の検証エラーをフィールドパス付きのリストに変換する。"""
    errors = []
    for err in error.errors():
        loc_parts = [str(part) for part in err.get("loc", [])]
        location = " -> ".join(loc_parts) if loc_parts else "unknown"
        errors.append(DslValidationError(
            message=err.get("msg", "不明なエラー"),
            location=location,
        ))
    return errors
