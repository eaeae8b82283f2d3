"""
配置管理模块

管理代码流图构建的配置参数：源码范围、输出位置、构建选项和日志
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional
from dotenv import load_dotenv
from loguru import logger
import json


class Config:
    """配置管理器"""

    def __init__(self, config_file: Optional[str] = None):
        """
        初始化配置

        Args:
            config_file: 配置文件路径，如果为None则使用默认配置
        """
        # 加载环境变量
        load_dotenv()

        # 默认配置
        self._defaults = {
            # 源码范围
            'source_globs': ['**/*.ts'],
            'project_root': '.',
            'supported_extensions': ['.ts', '.tsx', '.js', '.jsx', '.mjs', '.cjs'],
            'max_file_size_mb': 10,

            # 输出
            'output_file': './codeflow.json',

            # 构建选项
            'export_only': True,              # 只把导出的变量作为数据流起点
            'edge_key_includes_type': False,  # 边去重键是否包含边类型
            'recursion_limit': 10000,

            # 日志配置
            'log_level': 'INFO',
            'log_file': './logs/codeflow.log',
        }

        # 从环境变量覆盖配置
        self._load_from_env()

        # 从配置文件覆盖配置
        if config_file:
            self._load_from_file(config_file)

    def _load_from_env(self):
        """从环境变量加载配置"""
        env_mappings = {
            'CODEFLOW_SOURCE_GLOBS': 'source_globs',
            'CODEFLOW_PROJECT_ROOT': 'project_root',
            'CODEFLOW_OUTPUT_FILE': 'output_file',
            'CODEFLOW_EXPORT_ONLY': 'export_only',
            'CODEFLOW_EDGE_KEY_INCLUDES_TYPE': 'edge_key_includes_type',
            'CODEFLOW_RECURSION_LIMIT': 'recursion_limit',
            'CODEFLOW_MAX_FILE_SIZE_MB': 'max_file_size_mb',
            'LOG_LEVEL': 'log_level',
            'LOG_FILE': 'log_file',
        }

        for env_key, config_key in env_mappings.items():
            env_value = os.getenv(env_key)
            if env_value is not None:
                # 类型转换
                if config_key in ['recursion_limit', 'max_file_size_mb']:
                    try:
                        self._defaults[config_key] = int(env_value)
                    except ValueError:
                        logger.warning(f"忽略无效的整数配置 {env_key}={env_value}")
                elif config_key in ['export_only', 'edge_key_includes_type']:
                    self._defaults[config_key] = env_value.strip().lower() in ('1', 'true', 'yes', 'on')
                elif config_key == 'source_globs':
                    self._defaults[config_key] = [g.strip() for g in env_value.split(',') if g.strip()]
                else:
                    self._defaults[config_key] = env_value

    def _load_from_file(self, config_file: str):
        """从配置文件加载配置"""
        config_path = Path(config_file)
        if not config_path.exists():
            logger.warning(f"配置文件不存在: {config_path}")
            return

        with open(config_path, 'r', encoding='utf-8') as f:
            file_config = json.load(f)

        # 更新配置（忽略未知键）
        for key, value in file_config.items():
            if key in self._defaults:
                self._defaults[key] = value
            else:
                logger.debug(f"忽略未知配置项: {key}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        获取配置值

        Args:
            key: 配置键
            default: 默认值

        Returns:
            配置值
        """
        return self._defaults.get(key, default)

    def set(self, key: str, value: Any):
        """
        设置配置值

        Args:
            key: 配置键
            value: 配置值
        """
        self._defaults[key] = value

    def update(self, config_dict: Dict[str, Any]):
        """
        批量更新配置

        Args:
            config_dict: 配置字典
        """
        self._defaults.update(config_dict)

    def save_to_file(self, config_file: str):
        """
        保存配置到文件

        Args:
            config_file: 配置文件路径
        """
        config_path = Path(config_file)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, 'w', encoding='utf-8') as f:
            json.dump(self._defaults, f, ensure_ascii=False, indent=2)

    def get_project_root(self) -> Path:
        """获取项目根目录（节点 location 相对于此目录）"""
        return Path(self.get('project_root')).resolve()

    def get_output_path(self) -> Path:
        """获取输出文件路径"""
        return Path(self.get('output_file'))

    def get_source_globs(self) -> List[str]:
        """获取源码 glob 列表"""
        globs = self.get('source_globs', [])
        if isinstance(globs, str):
            return [globs]
        return list(globs)

    def is_supported_file(self, file_path: Path) -> bool:
        """
        检查文件是否参与分析

        Args:
            file_path: 文件路径

        Returns:
            是否支持
        """
        if not file_path.is_file():
            return False

        # 检查扩展名
        supported_extensions = self.get('supported_extensions', [])
        if file_path.suffix.lower() not in supported_extensions:
            return False

        # 声明文件没有函数体，不参与分析
        if file_path.name.endswith('.d.ts'):
            return False

        # 检查文件大小
        max_size_mb = self.get('max_file_size_mb', 10)
        file_size_mb = file_path.stat().st_size / (1024 * 1024)
        return file_size_mb <= max_size_mb

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return self._defaults.copy()

    def __getattr__(self, name: str) -> Any:
        """支持点号访问配置"""
        if name.startswith('_'):
            raise AttributeError(name)
        if name in self._defaults:
            return self._defaults[name]
        raise AttributeError(f"配置项 '{name}' 不存在")

    def __repr__(self) -> str:
        """字符串表示"""
        return f"Config({len(self._defaults)} items)"
